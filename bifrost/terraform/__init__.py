"""Terraform generation.

Usage:
    from bifrost.terraform import generate
    bundle = generate(config)
    for name, text in bundle.files().items():
        ...
"""

from bifrost.terraform.generator import generate
from bifrost.terraform.packager import ArtifactBundle

__all__ = ["generate", "ArtifactBundle"]
