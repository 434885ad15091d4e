"""Tests for ICD-API entity normalization."""

import json

from icd_mcp.normalize import parse_entity


class TestTitle:
    def test_plain_string_title(self):
        assert parse_entity({"title": "Cholera"}).title == "Cholera"

    def test_localized_title(self):
        entity = parse_entity({"title": {"@language": "en", "@value": "Cholera"}})
        assert entity.title == "Cholera"

    def test_value_key_title(self):
        assert parse_entity({"title": {"value": "Cholera"}}).title == "Cholera"

    def test_missing_title_is_empty_string(self):
        entity = parse_entity({"code": "1A00"})
        assert entity.title == ""

    def test_unrecognized_object_title_is_dumped(self):
        raw = {"@language": "en"}
        assert parse_entity({"title": raw}).title == json.dumps(raw)


class TestCode:
    def test_primary_code(self):
        assert parse_entity({"code": "A00", "theCode": "X"}).code == "A00"

    def test_the_code_fallback(self):
        assert parse_entity({"theCode": "1A00"}).code == "1A00"

    def test_code_range_fallback(self):
        assert parse_entity({"codeRange": "1A00-1A09"}).code == "1A00-1A09"

    def test_no_code(self):
        assert parse_entity({}).code == ""


class TestTextFields:
    def test_localized_definition_and_note(self):
        entity = parse_entity(
            {
                "definition": {"@value": "An acute diarrhoeal infection"},
                "longDefinition": "Long text",
                "codingNote": {"@language": "en", "@value": "Use additional code"},
            }
        )
        assert entity.definition == "An acute diarrhoeal infection"
        assert entity.long_definition == "Long text"
        assert entity.coding_note == "Use additional code"

    def test_definition_object_without_value_is_absent(self):
        assert parse_entity({"definition": {"@language": "en"}}).definition is None

    def test_absent_optional_fields_are_none(self):
        entity = parse_entity({"code": "A00", "title": "Cholera"})
        assert entity.definition is None
        assert entity.long_definition is None
        assert entity.coding_note is None
        assert entity.inclusions is None
        assert entity.exclusions is None
        assert entity.parent is None
        assert entity.children is None
        assert entity.uri is None
        assert entity.class_kind is None
        assert entity.browser_url is None


class TestInclusionsExclusions:
    def test_label_objects(self):
        entity = parse_entity(
            {
                "inclusion": [
                    {"label": {"@language": "en", "@value": "Classical cholera"}},
                    {"label": "Cholera gravis"},
                    "plain text",
                ],
                "exclusion": [{"label": {"@value": "Paratyphoid"}, "linearizationReference": "x"}],
            }
        )
        assert entity.inclusions == ["Classical cholera", "Cholera gravis", "plain text"]
        assert entity.exclusions == ["Paratyphoid"]

    def test_item_without_label_is_dumped(self):
        item = {"foundationReference": "http://id.who.int/icd/entity/1"}
        entity = parse_entity({"exclusion": [item]})
        assert entity.exclusions == [json.dumps(item)]

    def test_index_terms_used_when_no_inclusions(self):
        entity = parse_entity({"indexTerm": [{"label": {"@value": "Asiatic cholera"}}]})
        assert entity.inclusions == ["Asiatic cholera"]


class TestHierarchy:
    def test_parent_list_takes_first(self):
        entity = parse_entity({"parent": ["http://id.who.int/a", "http://id.who.int/b"]})
        assert entity.parent == "http://id.who.int/a"

    def test_parent_string(self):
        assert parse_entity({"parent": "http://id.who.int/a"}).parent == "http://id.who.int/a"

    def test_empty_parent_list(self):
        assert parse_entity({"parent": []}).parent is None

    def test_child_string_becomes_list(self):
        assert parse_entity({"child": "http://id.who.int/c"}).children == ["http://id.who.int/c"]

    def test_child_list(self):
        children = ["http://id.who.int/c1", "http://id.who.int/c2"]
        assert parse_entity({"child": children}).children == children


class TestMetadata:
    def test_uri_class_kind_browser_url(self):
        entity = parse_entity(
            {
                "@id": "http://id.who.int/icd/release/11/2024-01/mms/257068234",
                "classKind": "category",
                "browserUrl": "https://icd.who.int/browse/2024-01/mms/en#257068234",
            }
        )
        assert entity.uri == "http://id.who.int/icd/release/11/2024-01/mms/257068234"
        assert entity.class_kind == "category"
        assert entity.browser_url == "https://icd.who.int/browse/2024-01/mms/en#257068234"

    def test_id_fallback_for_uri(self):
        assert parse_entity({"id": "http://id.who.int/x"}).uri == "http://id.who.int/x"
