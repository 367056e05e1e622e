"""Prompts and hint templates for context compression.

Each summarizing strategy sends a fixed preamble, the messages to
compress, and a fixed closing instruction. Results are wrapped in a
tagged template that also carries the offload reload hint:

- **Tool runs** -- historic sequences of tool calls and results.
- **Large payloads** -- single oversized messages (preview only, no model).
- **Previous rounds** -- finished user/assistant exchanges.
- **Current round** -- in-progress tool traffic after the latest user message.
"""

from __future__ import annotations

import re

# Every hint embeds this marker so offload ids can be recovered from text.
OFFLOAD_UUID_MARKER = "working_context_offload_uuid"

_OFFLOAD_UUID_RE = re.compile(rf"{OFFLOAD_UUID_MARKER}:\s*([0-9A-Za-z_\-]+)")

_PLACEHOLDER_RE = re.compile(r"\{(tool_info|original_chars|target_chars|percent)(?::([^{}]*))?\}")


def extract_offload_uuids(text: str) -> list[str]:
    """Return the offload uuids referenced in *text*, in order of appearance."""
    return _OFFLOAD_UUID_RE.findall(text)


# ---------------------------------------------------------------------------
# Tool runs
# ---------------------------------------------------------------------------

TOOL_COMPRESS_PROMPT_START: str = (
    "Please compress and summarize the following tool invocation history."
)

TOOL_COMPRESS_PROMPT_END: str = (
    "Above is a history of tool invocations.\n"
    "Summarize the tool responses while keeping the key invocation details: "
    "the tool name, what it was called for, and what it returned.\n"
    "For repeated calls to the same tool, merge the different parameters and "
    "results and highlight the variations that matter.\n"
    "For planning tools (create_plan, revise_current_plan, update_subtask_state, "
    "finish_subtask, view_subtasks, finish_plan, view_historical_plans, "
    "recover_historical_plan) keep only a one-line note that plan operations "
    "happened, without parameters, results or intermediate states."
)

TOOL_SUMMARY_FORMAT: str = (
    "<compressed_history>{summary}</compressed_history>\n"
    "<hint> You can use this information as historical context for future "
    "reference in carrying out your tasks.</hint>"
)

TOOL_SUMMARY_OFFLOAD_HINT: str = (
    "\n<hint> The original tool invocations are stored in the offload with "
    f"{OFFLOAD_UUID_MARKER}: {{uuid}}. If you need them, use the context_reload "
    "tool with this UUID.</hint>"
)

# ---------------------------------------------------------------------------
# Large payloads
# ---------------------------------------------------------------------------

LARGE_MESSAGE_OFFLOAD_FORMAT: str = (
    "{preview}\n"
    "<hint> This message content has been offloaded due to its size. The "
    f"original content is stored with {OFFLOAD_UUID_MARKER}: {{uuid}}. If you "
    "need the full content, use the context_reload tool with this UUID.</hint>"
)

# ---------------------------------------------------------------------------
# Previous rounds
# ---------------------------------------------------------------------------

ROUND_SUMMARY_PROMPT_START: str = (
    "Please summarize the following conversation history. Preserve the key "
    "information, decisions and context that will matter for future reference."
)

ROUND_SUMMARY_PROMPT_END: str = (
    "Above is a conversation history.\n"
    "Provide a concise summary that:\n"
    "    - Preserves important decisions, conclusions and key information\n"
    "    - Keeps the context needed for future interactions\n"
    "    - Merges repeated or similar information\n"
    "    - Highlights important outcomes or results"
)

ROUND_SUMMARY_FORMAT: str = (
    "<conversation_summary>{summary}</conversation_summary>\n"
    "<hint> This is a summary of previous conversation rounds. You can use it "
    "as historical context for future reference.</hint>"
)

ROUND_SUMMARY_OFFLOAD_HINT: str = (
    "\n<hint> The original conversation is stored in the offload with "
    f"{OFFLOAD_UUID_MARKER}: {{uuid}}. If you need the full conversation, use "
    "the context_reload tool with this UUID.</hint>"
)

# ---------------------------------------------------------------------------
# Current round
# ---------------------------------------------------------------------------

CURRENT_ROUND_COMPRESS_PROMPT: str = (
    "Please compress and summarize the following current-round messages "
    "(tool calls and their results).\n\n"
    "The content below is about {original_chars} characters long. Compress it "
    "to about {target_chars} characters ({percent:.0f}% of the original).\n\n"
    "Guidelines:\n"
    "- Keep every tool name, tool call ID and the parameters that matter.\n"
    "- Keep key results, outcomes and status information.\n"
    "- Keep the order and relationships between tool calls.\n"
    "- For planning tools, keep only what was done to the plan and why.\n"
    "- Merge repeated information and drop verbose raw output.\n\n"
    "{tool_info}\n\n"
    "Reply with the summary only."
)

CURRENT_ROUND_FORMAT: str = "<compressed_current_round>{summary}</compressed_current_round>"

CURRENT_ROUND_OFFLOAD_HINT: str = (
    "\n<hint> The above is a compressed summary of the current round's tool "
    "calls and results. Use it as context to continue reasoning and to answer "
    "the user, rather than repeating it verbatim. The original tool calls and "
    f"results are stored with {OFFLOAD_UUID_MARKER}: {{uuid}}. If you need "
    "specific details, use the context_reload tool with this UUID.</hint>"
)


def format_tool_summary(summary: str, uuid: str | None) -> str:
    """Wrap a tool-run digest with its reload hint."""
    text = TOOL_SUMMARY_FORMAT.format(summary=summary)
    if uuid is not None:
        text += TOOL_SUMMARY_OFFLOAD_HINT.format(uuid=uuid)
    return text


def format_offload_preview(preview: str, uuid: str) -> str:
    """Build the inline replacement for a single offloaded message."""
    return LARGE_MESSAGE_OFFLOAD_FORMAT.format(preview=preview, uuid=uuid)


def format_round_summary(summary: str, uuid: str | None) -> str:
    """Wrap a previous-round digest with its reload hint."""
    text = ROUND_SUMMARY_FORMAT.format(summary=summary)
    if uuid is not None:
        text += ROUND_SUMMARY_OFFLOAD_HINT.format(uuid=uuid)
    return text


def format_current_round(summary: str, uuid: str | None) -> str:
    """Wrap a current-round digest with its reload hint."""
    text = CURRENT_ROUND_FORMAT.format(summary=summary)
    if uuid is not None:
        text += CURRENT_ROUND_OFFLOAD_HINT.format(uuid=uuid)
    return text


def build_current_round_prompt(
    tool_info: str,
    *,
    compression_ratio: float,
    template: str | None = None,
) -> str:
    """Build the single user prompt for current-round compression.

    Args:
        tool_info: Rendered tool calls and truncated results.
        compression_ratio: Target digest size as a fraction of *tool_info*.
        template: Custom template with the same placeholders as
            CURRENT_ROUND_COMPRESS_PROMPT. Only those placeholders are
            substituted; any other braces are kept literally. A template
            without ``{tool_info}`` gets *tool_info* appended.

    Returns:
        The formatted prompt.
    """
    original_chars = len(tool_info)
    fields = {
        "tool_info": tool_info,
        "original_chars": original_chars,
        "target_chars": int(original_chars * compression_ratio),
        "percent": compression_ratio * 100,
    }
    if template is None:
        return CURRENT_ROUND_COMPRESS_PROMPT.format(**fields)
    if "{tool_info}" in template:
        return _fill_placeholders(template, fields)
    return f"{template}\n\n{tool_info}"


def _fill_placeholders(template: str, fields: dict[str, object]) -> str:
    # Other braces in a user template (JSON examples etc.) are left as-is.
    def substitute(match: re.Match[str]) -> str:
        name, spec = match.group(1), match.group(2) or ""
        return format(fields[name], spec)

    return _PLACEHOLDER_RE.sub(substitute, template)
