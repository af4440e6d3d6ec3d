from __future__ import annotations

from eve_engine.chat.intent import is_edit_intent, is_generation_intent, select_route
from eve_engine.chat.schema import Route
from eve_engine.chat.triggers import DEFAULT_SELFIE_DESCRIPTION, parse_visual_trigger


def test_generation_intent_keywords() -> None:
    assert is_generation_intent("please draw a cat")
    assert is_generation_intent("Can you show me a PICTURE OF the sea?")
    assert not is_generation_intent("how was your day?")


def test_edit_intent_keywords() -> None:
    assert not is_edit_intent("draw a cat")
    assert is_edit_intent("make it black and white")
    assert is_edit_intent("Bananafy this one")


def test_select_route_prefers_edit_when_attachment_present() -> None:
    assert select_route("make it black and white", has_attachment=True) is Route.EDIT_IMAGE
    assert select_route("hello", has_attachment=True) is Route.CHAT
    assert select_route("hello", has_attachment=True, force_image=True) is Route.EDIT_IMAGE


def test_select_route_generation_requires_no_attachment() -> None:
    assert select_route("generate a dragon", has_attachment=False) is Route.GENERATE_IMAGE
    assert select_route("generate a dragon", has_attachment=True) is Route.CHAT
    assert select_route("a quiet lake", has_attachment=False, force_image=True) is Route.GENERATE_IMAGE
    assert select_route("a quiet lake", has_attachment=False) is Route.CHAT


def test_parse_visual_trigger_extracts_description() -> None:
    trigger = parse_visual_trigger("I love this! [SELFIE: on a beach at sunset]")
    assert trigger.text == "I love this!"
    assert trigger.description == "on a beach at sunset"


def test_parse_visual_trigger_bare_marker_uses_default() -> None:
    trigger = parse_visual_trigger("Here you go [SELFIE]")
    assert trigger.text == "Here you go"
    assert trigger.description == DEFAULT_SELFIE_DESCRIPTION == "looking at the camera"


def test_parse_visual_trigger_empty_payload_uses_default() -> None:
    assert parse_visual_trigger("[SELFIE:]").description == "looking at the camera"


def test_parse_visual_trigger_honors_first_marker_and_strips_all() -> None:
    trigger = parse_visual_trigger("[SELFIE: in a cafe] one moment [SELFIE: at home] done")
    assert trigger.description == "in a cafe"
    assert "[SELFIE" not in trigger.text
    assert trigger.text.startswith("one moment")
    assert trigger.text.endswith("done")


def test_parse_visual_trigger_is_case_sensitive_and_leaves_plain_text() -> None:
    trigger = parse_visual_trigger("  no marker here [selfie]  ")
    assert trigger.description is None
    assert trigger.text == "  no marker here [selfie]  "


def test_parse_visual_trigger_keeps_payload_verbatim() -> None:
    trigger = parse_visual_trigger("ok [SELFIE:   at the pier  ]")
    assert trigger.description == "at the pier  "
    assert parse_visual_trigger("ok [SELFIE:   ]").description == "looking at the camera"
