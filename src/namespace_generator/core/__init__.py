"""Core subpackage.

This package contains the local cluster reader and the NamespaceResolver
that decides between the local and remote listing paths.
"""

from namespace_generator.core.cluster import LocalCluster
from namespace_generator.core.resolver import ARGOCD_NAMESPACE, NamespaceResolver

__all__ = [
    "ARGOCD_NAMESPACE",
    "LocalCluster",
    "NamespaceResolver",
]
