"""Platform context derived from rule file paths and channel settings.

A knowledge file stored under an ``aws/`` directory only makes sense for
messages that are about AWS, so the directory name contributes an extra term
that must be satisfied. Channel context reuses the same table to inject the
platform tokens a channel implies.
"""

from __future__ import annotations

import json
from pathlib import PurePath
from typing import Dict, List, Tuple

from core.match_tree import Combinator, MatchNode

PLATFORM_TOKENS: Dict[str, Tuple[str, ...]] = {
    "aws": ("aws", "amazon", "ec2", "route53", "s3"),
    "azure": ("azure", "arm", "azurestack"),
    "gcp": ("gcp", "google", "gce"),
    "ibmcloud": ("ibmcloud", "ibm", "powervs"),
    "nutanix": ("nutanix", "prism", "ahv"),
    "openstack": ("openstack", "nova", "neutron"),
    "vsphere": ("vsphere", "vcenter", "esxi", "vmware"),
    "baremetal": ("baremetal", "metal3", "ipi-baremetal"),
}


def platforms_in_path(path: str) -> List[str]:
    """Return known platform names that appear as path segments, in path order."""

    found: List[str] = []
    for part in PurePath(path).parts:
        name = part.lower()
        if name in PLATFORM_TOKENS and name not in found:
            found.append(name)
    return found


def path_context_terms(path: str) -> List[MatchNode]:
    return [
        MatchNode(combinator=Combinator.OR, literal_tokens=PLATFORM_TOKENS[name])
        for name in platforms_in_path(path)
    ]


def path_context_tokens(path: str) -> List[str]:
    tokens: List[str] = []
    for term in path_context_terms(path):
        tokens.extend(term.literal_tokens)
    return tokens


def path_context_expression(path: str) -> str:
    parts = [
        f"containsAny(tokens, {json.dumps(list(PLATFORM_TOKENS[name]))})"
        for name in platforms_in_path(path)
    ]
    return " and ".join(parts)
