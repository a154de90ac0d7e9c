from __future__ import annotations

"""
Unity Text Serialization Helpers.

Splits Unity-flavoured YAML streams ('--- !u!<classID> &<fileID>' headers)
into per-object documents, reads '.meta' sidecar files and decodes the
'{fileID, guid, type}' reference mappings found in serialized fields.
"""

import re
from typing import Any, Dict, Iterator, Optional, Tuple

import yaml

from missingrefs.domain.constants import GUID_LENGTH

YAML_HEADER = "%YAML"

_DOC_HEADER_RX = re.compile(r"^--- !u!(-?\d+) &(-?\d+)( stripped)?[ \t]*$", re.MULTILINE)
_NULL_TAG = "tag:yaml.org,2002:null"


class UnityLoader(yaml.SafeLoader):
    """
    Safe loader that keeps plain scalars as text.

    GUIDs made only of digits would otherwise load as (octal) integers and
    lose leading zeros. Only the null resolver is retained.
    """


UnityLoader.yaml_implicit_resolvers = {
    first: [(tag, rx) for tag, rx in resolvers if tag == _NULL_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def load_yaml(text: str) -> Any:
    return yaml.load(text, Loader=UnityLoader)

# -----------------------------------------------------------------------------
# DOCUMENT STREAMS
# -----------------------------------------------------------------------------

def iter_documents(text: str) -> Iterator[Tuple[int, int, bool, str, Dict[str, Any]]]:
    """
    Yield the objects of a Unity YAML stream.

    Yields:
        Tuple[int, int, bool, str, Dict[str, Any]]: (class_id, file_id, stripped,
        type_name, fields) for every non-empty document, in file order.

    Raises:
        yaml.YAMLError: If a document body is not valid YAML.
    """
    headers = list(_DOC_HEADER_RX.finditer(text))
    for i, header in enumerate(headers):
        end = headers[i + 1].start() if i + 1 < len(headers) else len(text)
        data = load_yaml(text[header.end():end])
        if not isinstance(data, dict) or not data:
            continue

        type_name, fields = next(iter(data.items()))
        yield (
            int(header.group(1)),
            int(header.group(2)),
            bool(header.group(3)),
            str(type_name),
            fields if isinstance(fields, dict) else {},
        )


def read_meta(text: str) -> Tuple[str, str, Optional[int]]:
    """
    Parse a '.meta' sidecar.

    Returns:
        Tuple[str, str, Optional[int]]: (guid, importer name, main object file id).
    """
    data = load_yaml(text)
    if not isinstance(data, dict):
        return "", "", None

    guid = as_guid(data.get("guid")) or ""
    importer = ""
    main_file_id = None
    for key, value in data.items():
        if str(key).endswith("Importer"):
            importer = str(key)
            if isinstance(value, dict):
                main_file_id = as_file_id(value.get("mainObjectFileID"))
            break
    return guid, importer, main_file_id

# -----------------------------------------------------------------------------
# REFERENCE VALUES
# -----------------------------------------------------------------------------

def is_reference(value: Any) -> bool:
    return isinstance(value, dict) and "fileID" in value


def as_file_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def as_guid(value: Any) -> Optional[str]:
    """Normalize a serialized GUID to lowercase text, or None when absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return f"{value:0{GUID_LENGTH}d}"
    text = str(value).strip().lower()
    return text or None
