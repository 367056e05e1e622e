"""Tests for compression prompts and hint templates."""

from __future__ import annotations

from autocontext.prompts.compress import (
    CURRENT_ROUND_COMPRESS_PROMPT,
    OFFLOAD_UUID_MARKER,
    build_current_round_prompt,
    extract_offload_uuids,
    format_current_round,
    format_offload_preview,
    format_round_summary,
    format_tool_summary,
)


class TestHintTemplates:
    def test_tool_summary_with_uuid(self):
        text = format_tool_summary("did things", "u-1")
        assert text.startswith("<compressed_history>did things</compressed_history>")
        assert f"{OFFLOAD_UUID_MARKER}: u-1" in text
        assert "context_reload" in text

    def test_tool_summary_without_uuid(self):
        text = format_tool_summary("did things", None)
        assert OFFLOAD_UUID_MARKER not in text

    def test_offload_preview(self):
        text = format_offload_preview("first chars", "u-2")
        assert text.startswith("first chars\n<hint>")
        assert extract_offload_uuids(text) == ["u-2"]

    def test_round_summary(self):
        text = format_round_summary("recap", "u-3")
        assert "<conversation_summary>recap</conversation_summary>" in text
        assert extract_offload_uuids(text) == ["u-3"]

    def test_current_round(self):
        text = format_current_round("merged", "u-4")
        assert text.startswith("<compressed_current_round>merged</compressed_current_round>")
        assert extract_offload_uuids(text) == ["u-4"]

    def test_summary_with_braces_is_kept_verbatim(self):
        text = format_tool_summary('called f({"a": 1})', "u")
        assert 'called f({"a": 1})' in text


class TestExtractOffloadUuids:
    def test_multiple_in_order(self):
        text = format_tool_summary("a", "first") + format_round_summary("b", "second")
        assert extract_offload_uuids(text) == ["first", "second"]

    def test_real_uuid(self):
        uuid = "3f2b8c1e-9d4a-4b6e-8f0a-1c2d3e4f5a6b"
        assert extract_offload_uuids(format_offload_preview("p", uuid)) == [uuid]

    def test_none(self):
        assert extract_offload_uuids("plain text") == []


class TestCurrentRoundPrompt:
    def test_default_template_target_chars(self):
        prompt = build_current_round_prompt("x" * 1000, compression_ratio=0.3)
        assert "about 1000 characters" in prompt
        assert "about 300 characters (30% of the original)" in prompt
        assert "x" * 1000 in prompt

    def test_custom_template_with_placeholders(self):
        prompt = build_current_round_prompt(
            "TOOLS", compression_ratio=0.5, template="Shrink to {target_chars}: {tool_info}"
        )
        assert prompt == "Shrink to 2: TOOLS"

    def test_custom_template_keeps_literal_braces(self):
        template = 'Summarize as JSON like {"calls": []} in {percent:.0f}%. {tool_info}'
        prompt = build_current_round_prompt("TOOLS {x}", compression_ratio=0.5, template=template)
        assert prompt == 'Summarize as JSON like {"calls": []} in 50%. TOOLS {x}'

    def test_custom_template_without_placeholder_appends(self):
        prompt = build_current_round_prompt("TOOLS", compression_ratio=0.5, template="Summarize.")
        assert prompt == "Summarize.\n\nTOOLS"

    def test_default_template_has_all_placeholders(self):
        for name in ("{tool_info}", "{original_chars}", "{target_chars}"):
            assert name in CURRENT_ROUND_COMPRESS_PROMPT
