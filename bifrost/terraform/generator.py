"""Template generator entry point."""

from typing import Any, Mapping, Optional, Union

import structlog

from bifrost.config import TemplateSettings
from bifrost.models.configuration import Configuration, parse_configuration
from bifrost.terraform.assembler import assemble
from bifrost.terraform.packager import ArtifactBundle, package
from bifrost.terraform.variables import extract_variables

log = structlog.get_logger()


def generate(
    config: Union[Configuration, Mapping[str, Any]],
    settings: Optional[TemplateSettings] = None,
) -> ArtifactBundle:
    """Generate the Terraform artifact bundle for a configuration.

    The run is pure: identical input gives byte-identical output, and
    nothing is cached between calls.

    Args:
        config: Configuration, or a mapping in the configuration file shape
        settings: Version pins for the preamble

    Returns:
        ArtifactBundle with main, variables, defaults and documentation

    Raises:
        BifrostError: Any configuration, topology or naming failure
    """
    config = parse_configuration(config)
    log.info("generation_started", application=config.application_name)

    assembled = assemble(config, settings)
    variables = extract_variables(config)
    bundle = package(assembled, variables, config)

    log.info(
        "bundle_generated",
        application=config.application_name,
        resources=len(assembled.declarations),
        variables=len(variables),
    )
    return bundle
