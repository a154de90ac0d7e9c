from __future__ import annotations

"""
Unit tests for the Unity text-serialization helpers.
"""

import pytest
import yaml

from missingrefs.utils.unity_yaml import as_file_id, as_guid, is_reference, iter_documents, load_yaml, read_meta

STREAM = """%YAML 1.1
%TAG !u! tag:unity3d.com,2011:
--- !u!1 &100
GameObject:
  m_Name: Hero
  m_Component:
  - component: {fileID: 400}
--- !u!4 &400 stripped
Transform:
  m_GameObject: {fileID: 100}
--- !u!114 &-8674383958398400144
MonoBehaviour:
  m_Script: {fileID: 11500000, guid: 00000000000000001234567890123456, type: 3}
  m_Speed: 1.5
"""


def test_iter_documents_reads_headers_and_bodies() -> None:
    docs = list(iter_documents(STREAM))

    assert [(d[0], d[1], d[2], d[3]) for d in docs] == [
        (1, 100, False, "GameObject"),
        (4, 400, True, "Transform"),
        (114, -8674383958398400144, False, "MonoBehaviour"),
    ]
    assert docs[0][4]["m_Name"] == "Hero"
    assert docs[0][4]["m_Component"][0]["component"] == {"fileID": "400"}


def test_plain_scalars_stay_text() -> None:
    data = load_yaml("guid: 00000000000000001234567890123456\nn: 12\nf: 1.5\nempty:\n")

    assert data["guid"] == "00000000000000001234567890123456"
    assert data["n"] == "12"
    assert data["f"] == "1.5"
    assert data["empty"] is None


def test_iter_documents_propagates_malformed_yaml() -> None:
    with pytest.raises(yaml.YAMLError):
        list(iter_documents("--- !u!1 &1\nGameObject:\n  m_Name: [unclosed\n"))


def test_read_meta_extracts_guid_importer_and_main_object() -> None:
    meta = (
        "fileFormatVersion: 2\n"
        "guid: 4E3F1A2B3C4D5E6F708192A3B4C5D6E7\n"
        "NativeFormatImporter:\n"
        "  externalObjects: {}\n"
        "  mainObjectFileID: 11400000\n"
    )
    assert read_meta(meta) == ("4e3f1a2b3c4d5e6f708192a3b4c5d6e7", "NativeFormatImporter", 11400000)


def test_read_meta_of_garbage_is_empty() -> None:
    assert read_meta("just text") == ("", "", None)


def test_reference_value_helpers() -> None:
    assert is_reference({"fileID": "0"})
    assert not is_reference({"guid": "x"})
    assert not is_reference("fileID")

    assert as_file_id("  42 ") == 42
    assert as_file_id(7) == 7
    assert as_file_id(True) is None
    assert as_file_id("abc") is None
    assert as_file_id(None) is None

    assert as_guid(1234) == "00000000000000000000000000001234"
    assert as_guid("ABC") == "abc"
    assert as_guid("") is None
    assert as_guid(None) is None
