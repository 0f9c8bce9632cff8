"""Load configuration files (YAML or JSON) into a Configuration."""

from pathlib import Path
from typing import Union

import structlog
import yaml

from bifrost.core.errors import ConfigurationError
from bifrost.models.configuration import Configuration, parse_configuration

log = structlog.get_logger()


def load_configuration_file(path: Union[str, Path]) -> Configuration:
    """Read and validate a configuration file.

    JSON is a subset of YAML, so one loader handles both.

    Raises:
        ConfigurationError: The file cannot be read or parsed, or is not a mapping
    """
    path = Path(path)
    try:
        with open(path, "r") as file:
            data = yaml.safe_load(file)
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read configuration file: {e.strerror or e}",
            value=str(path),
        ) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Configuration file is not valid YAML or JSON: {e}",
            value=str(path),
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            "Configuration file must contain a mapping at the top level",
            value=str(path),
            suggestion="Start the file with applicationName, network, connectivity, ...",
        )

    log.info("configuration_file_loaded", path=str(path))
    return parse_configuration(data)
