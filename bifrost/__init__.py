"""Bifrost - network templates for distributed applications.

Turns a declarative description of a distributed application (regions,
hybrid and multi-cloud connectivity, security policy, workloads) into a
Terraform module for Google Cloud.
"""

__version__ = "0.1.0"

from bifrost.models.configuration import Configuration, parse_configuration
from bifrost.terraform.generator import generate
from bifrost.terraform.packager import ArtifactBundle
from bifrost.config import BifrostConfig

__all__ = [
    "__version__",
    "ArtifactBundle",
    "BifrostConfig",
    "Configuration",
    "generate",
    "parse_configuration",
]
