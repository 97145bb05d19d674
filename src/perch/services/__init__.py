"""Service shape, router trees and the mixin pipeline."""

from perch.services.builder import BoundService, ServiceBuilder, unwrap
from perch.services.flatten import Branch, flatten
from perch.services.protocol import METHODS, is_service, normalize_path

__all__ = [
    "METHODS",
    "BoundService",
    "Branch",
    "ServiceBuilder",
    "flatten",
    "is_service",
    "normalize_path",
    "unwrap",
]
