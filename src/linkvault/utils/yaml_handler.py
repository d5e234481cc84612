"""YAML serialization and deserialization utilities for link records."""

from pathlib import Path

import yaml

from ..models.link import Link


class YAMLError(Exception):
    """YAML processing error."""

    pass


def serialize_link(link: Link) -> str:
    """Serialize a Link to YAML string.

    Raises:
        YAMLError: If serialization fails
    """
    try:
        data = link.model_dump(mode='json', by_alias=True)

        return yaml.safe_dump(
            data,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    except Exception as e:
        raise YAMLError(f"Failed to serialize link: {e}") from e


def deserialize_link(yaml_str: str) -> Link:
    """Deserialize a Link from YAML string.

    Raises:
        YAMLError: If deserialization fails
    """
    try:
        data = yaml.safe_load(yaml_str)

        if data is None:
            raise YAMLError("YAML content is empty")

        if not isinstance(data, dict):
            raise YAMLError("YAML content is not a mapping")

        return Link.model_validate(data)

    except YAMLError:
        raise
    except yaml.YAMLError as e:
        raise YAMLError(f"Invalid YAML format: {e}") from e
    except Exception as e:
        raise YAMLError(f"Failed to deserialize link: {e}") from e


def load_link_from_file(file_path: Path) -> Link:
    """Load a Link from YAML file.

    Raises:
        YAMLError: If file reading or parsing fails
    """
    try:
        if not file_path.exists():
            raise YAMLError(f"File not found: {file_path}")

        return deserialize_link(file_path.read_text(encoding='utf-8'))

    except YAMLError:
        raise
    except Exception as e:
        raise YAMLError(f"Failed to load link from {file_path}: {e}") from e


def save_link_to_file(link: Link, file_path: Path) -> None:
    """Save a Link to YAML file.

    Raises:
        YAMLError: If file writing fails
    """
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(serialize_link(link), encoding='utf-8')

    except YAMLError:
        raise
    except Exception as e:
        raise YAMLError(f"Failed to save link to {file_path}: {e}") from e
