"""Prompt templates and message builders.

All prompt construction goes through these functions so the chat endpoint,
the agent endpoint, the CLI and the single-shot editor actions render
identical prompts for identical input.
"""

import json
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from altai.models.chat import ChatMessage, ChatMode, UPDATE_FIELDS_ACTION
from altai.models.config import Config
from altai.models.context import ContextSnapshot
from altai.models.field_value import is_scalar


MAX_HISTORY_MESSAGES = 10
MAX_FIELD_VALUE_CHARS = 500
MAX_OBJECT_JSON_CHARS = 200

DEFAULT_CHAT_PREAMBLE = (
    "You are a helpful AI assistant integrated into the Statamic CMS control panel. "
    "You help users with content creation, editing, and general assistance."
)

DOCUMENT_DELIMITER = "--- Full Document Content ---"
SELECTION_DELIMITER = "--- Currently Selected Text ---"

FIELD_UPDATE_CONTRACT = (
    '{"action":"update_fields","message":"Brief explanation","changes":'
    '[{"field":"field_handle","current_value":"current","proposed_value":"new","reason":"why"}]}'
)

# Single-shot action -> capability switch that enables it
ACTION_CAPABILITIES = {
    "completion": "completion",
    "enhance": "enhancement",
    "summarize": "summarization",
    "translate": "translation",
    "adjust_tone": "tone_adjustment",
}


@dataclass
class ActionPrompt:
    """System and user prompt for a single-shot text action."""
    system: str
    user: str

    def to_messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


def build_action_prompt(action: str, payload: dict[str, Any]) -> ActionPrompt:
    """
    Build the prompt pair for a single-shot editor action.

    Args:
        action: One of completion, enhance, summarize, translate, adjust_tone
                (anything else falls back to a generic assistant)
        payload: `text`, plus `target_language` for translate or `tone`
                 for adjust_tone

    Returns:
        ActionPrompt with system and user text
    """
    text = payload.get("text", "")
    target_language = payload.get("target_language")
    tone = payload.get("tone")

    if action == "completion":
        return ActionPrompt(
            system=(
                "You are a helpful AI writing assistant. Complete the user's text naturally "
                "and coherently, maintaining the same style and tone."
            ),
            user=f"Please complete the following text:\n\n{text}",
        )

    if action == "enhance":
        return ActionPrompt(
            system=(
                "You are a professional editor. Improve the given text by enhancing clarity, "
                "grammar, and readability while maintaining the original meaning and tone."
            ),
            user=f"Please enhance the following text:\n\n{text}",
        )

    if action == "summarize":
        return ActionPrompt(
            system=(
                "You are a skilled summarizer. Create a concise summary that captures "
                "the key points of the given text."
            ),
            user=f"Please summarize the following text:\n\n{text}",
        )

    if action == "translate":
        return ActionPrompt(
            system=(
                f"You are a professional translator. Translate the given text to {target_language} "
                f"while maintaining the original meaning, tone, and context."
            ),
            user=f"Please translate the following text to {target_language}:\n\n{text}",
        )

    if action == "adjust_tone":
        return ActionPrompt(
            system=(
                f"You are a writing expert. Adjust the tone of the given text to be more {tone} "
                f"while preserving the core message."
            ),
            user=f"Please adjust the tone of the following text to be more {tone}:\n\n{text}",
        )

    return ActionPrompt(system="You are a helpful AI assistant.", user=text)


def display_value(value: Any) -> str:
    """Render a metadata value (title, author, site, ...) as one line of text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (str, int, float)):
        return str(value)
    if isinstance(value, dict):
        for key in ("name", "handle", "title"):
            if value.get(key) is not None:
                return str(value[key])
        return "[Object]"
    if isinstance(value, list):
        scalars = [str(item) for item in value if is_scalar(item)]
        return ", ".join(scalars) if scalars else "[Array]"
    return str(value)


def format_field_line(handle: str, value: Any, label: Optional[str] = None) -> Optional[str]:
    """
    Render one field as `[handle] "Label": value`.

    Returns None for values that shouldn't be listed (empty lists).

    Example:
        >>> format_field_line("contact_information", "hi", "Contact Info")
        '[contact_information] "Contact Info": hi'
    """
    identifier = f'[{handle}] "{label}"' if label else f"[{handle}]"

    if isinstance(value, list):
        if not value:
            return None
        scalars = [str(item) for item in value if is_scalar(item)]
        if scalars:
            return f"{identifier}: {', '.join(scalars)}"
        return f"{identifier}: [Complex array structure]"

    if isinstance(value, bool):
        return f"{identifier}: {'Yes' if value else 'No'}"

    if isinstance(value, str):
        if len(value) > MAX_FIELD_VALUE_CHARS:
            truncated = value[:MAX_FIELD_VALUE_CHARS]
            return f"{identifier}: {truncated}... [truncated, {len(value)} total chars]"
        return f"{identifier}: {value}"

    if isinstance(value, (int, float)):
        return f"{identifier}: {value}"

    if value is None:
        return None

    encoded = json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    if len(encoded) > MAX_OBJECT_JSON_CHARS:
        return f"{identifier}: [Complex data structure]"
    return f"{identifier}: {encoded}"


def history_entries(history: Iterable[ChatMessage | dict[str, Any]]) -> list[dict[str, str]]:
    """Most recent history entries as `{role, content}` pairs.

    Entries without both a role and content are ignored.
    """
    entries = []
    for message in history:
        if isinstance(message, ChatMessage):
            entries.append(message.to_history_entry())
        elif isinstance(message, dict) and message.get("role") and message.get("content") is not None:
            entries.append({"role": str(message["role"]), "content": str(message["content"])})
    return entries[-MAX_HISTORY_MESSAGES:]


def _humanize(value: str) -> str:
    text = value.replace("_", " ")
    return text[:1].upper() + text[1:]


def _has_data(snapshot: ContextSnapshot) -> bool:
    return any(value not in ("", {}, []) for value in snapshot.to_context().values())


def _section(title: str, lines: list[str]) -> list[str]:
    """A `=== TITLE ===` block, or nothing when there are no lines."""
    if not lines:
        return []
    return [f"=== {title} ===", *lines, ""]


class PromptComposer:
    """Renders snapshots and conversations into chat-completion messages."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()

    def build_chat_messages(
        self,
        user_message: str,
        history: Iterable[ChatMessage | dict[str, Any]],
        snapshot: Optional[ContextSnapshot],
        mode: ChatMode = "chat",
    ) -> list[dict[str, str]]:
        """
        Build messages for a context-aware chat turn.

        Args:
            user_message: The message the user just typed
            history: Earlier transcript entries (only the last 10 are sent)
            snapshot: Snapshot of the entry being edited, or None
            mode: "chat" for prose, "update_fields" for a JSON change proposal

        Returns:
            System message, history entries, then the user message
        """
        system_prompt = self.build_chat_system_prompt(snapshot, mode)
        return [
            {"role": "system", "content": system_prompt},
            *history_entries(history),
            {"role": "user", "content": user_message},
        ]

    def build_chat_system_prompt(self, snapshot: Optional[ContextSnapshot], mode: ChatMode = "chat") -> str:
        lines: list[str] = []

        if self.config.system_prompt_override.strip():
            lines += [self.config.system_prompt_override, ""]
        else:
            lines += [DEFAULT_CHAT_PREAMBLE, ""]

        if self.config.website_context.strip():
            lines += ["=== WEBSITE CONTEXT ===", self.config.website_context, ""]

        if snapshot is not None and _has_data(snapshot):
            lines += ["Current entry context:", ""]
            lines += self._context_sections(snapshot)
            lines += [
                "---",
                "",
                "When the user asks about 'this entry' or 'what I'm working on', reference the information above. "
                "Use this context to provide specific, relevant assistance based on the current entry's "
                "collection, dates, fields, and other metadata.",
            ]

        lines += [
            "",
            "You can provide suggestions and guidance. When suggesting actions that could modify content, "
            "explain clearly what changes you recommend and why.",
        ]

        if mode == UPDATE_FIELDS_ACTION:
            lines += [
                "",
                "=== FIELD UPDATE MODE ===",
                "Analyze the field values above and suggest improvements. Respond with ONLY this JSON object:",
                "",
                FIELD_UPDATE_CONTRACT,
                "",
                "Rules:",
                "- CRITICAL: Use EXACT field handles from [BRACKETS] in FIELD VALUES section above",
                "  Example: If you see '[contact_information] ...', use 'contact_information'",
                "  WRONG: Converting display label 'Contact Info' to 'contact_info'",
                "  RIGHT: Copying exact text from [brackets]: 'contact_information'",
                "- Never create field names or convert labels to snake_case",
                "- Only suggest genuine improvements where proposed differs from current",
                "- For rich text fields, suggest plain text only",
                "- Return only JSON, no additional text",
            ]

        return "\n".join(lines).strip()

    def _context_sections(self, snapshot: ContextSnapshot) -> list[str]:
        out: list[str] = []

        page_type_lines = []
        if snapshot.page_type:
            page_type_lines.append(f"Type: {_humanize(snapshot.page_type)}")
            if snapshot.is_new:
                page_type_lines.append("Status: Creating new entry")
            elif snapshot.has_changes:
                page_type_lines.append("Status: Has unsaved changes")
        out += _section("PAGE TYPE", page_type_lines)

        entry_lines = []
        if snapshot.title is not None:
            entry_lines.append(f"Title: {display_value(snapshot.title)}")
        if snapshot.slug is not None:
            entry_lines.append(f"Slug: {display_value(snapshot.slug)}")
        if snapshot.entry_id is not None:
            entry_lines.append(f"Entry ID: {snapshot.entry_id}")
        if snapshot.permalink is not None:
            entry_lines.append(f"Permalink: {display_value(snapshot.permalink)}")
        if snapshot.status is not None:
            entry_lines.append(f"Publication Status: {_humanize(snapshot.status)}")
        out += _section("ENTRY INFORMATION", entry_lines)

        structure_lines = []
        if snapshot.collection is not None:
            structure_lines.append(f"Collection: {snapshot.collection}")
        if snapshot.blueprint is not None:
            structure_lines.append(f"Blueprint: {snapshot.blueprint}")
        if snapshot.taxonomy is not None:
            structure_lines.append(f"Taxonomy: {snapshot.taxonomy}")
        if snapshot.global_set is not None:
            structure_lines.append(f"Global Set: {snapshot.global_set}")
        if snapshot.parent is not None:
            structure_lines.append(f"Parent Entry: {display_value(snapshot.parent)}")
        out += _section("STRUCTURE", structure_lines)

        date_lines = []
        if snapshot.date is not None:
            date_lines.append(f"Date: {display_value(snapshot.date)}")
        if snapshot.created_at is not None:
            date_lines.append(f"Created: {display_value(snapshot.created_at)}")
        if snapshot.updated_at is not None:
            date_lines.append(f"Last Updated: {display_value(snapshot.updated_at)}")
        out += _section("DATES & TIMELINE", date_lines)

        classification_lines = []
        if snapshot.categories:
            classification_lines.append(f"Categories: {display_value(snapshot.categories)}")
        if snapshot.tags:
            classification_lines.append(f"Tags: {display_value(snapshot.tags)}")
        if snapshot.featured is not None:
            classification_lines.append(f"Featured: {display_value(snapshot.featured)}")
        out += _section("CLASSIFICATION", classification_lines)

        user_lines = []
        if snapshot.current_user is not None:
            user_lines.append(f"Current User: {snapshot.current_user.display_name}")
        if snapshot.author is not None:
            user_lines.append(f"Entry Author: {display_value(snapshot.author)}")
        out += _section("USER INFORMATION", user_lines)

        site_lines = []
        if snapshot.site is not None:
            site_lines.append(f"Site: {display_value(snapshot.site)}")
        if snapshot.locale is not None:
            site_lines.append(f"Locale: {display_value(snapshot.locale)}")
        if snapshot.multisite is not None:
            site_lines.append(f"Multisite Enabled: {display_value(snapshot.multisite)}")
        out += _section("SITE & LOCALIZATION", site_lines)

        if snapshot.route:
            out += _section("CURRENT LOCATION", [f"Control Panel Route: {snapshot.route}"])

        if snapshot.field_labels:
            out += [
                "=== FIELD LABEL MAPPING ===",
                "This shows the relationship between field handles (technical names) and their display labels (what users see).",
                'Format: field_handle → "Display Label"',
                "",
            ]
            out += [f'{handle} → "{label}"' for handle, label in snapshot.field_labels.items()]
            out += [
                "",
                "IMPORTANT: When updating fields, you MUST use the field_handle (left side), NOT the display label (right side).",
                "However, when answering questions, you can recognize fields by either their handle or label.",
                "Example: User asks about 'Contact Info' → you know they mean the 'contact_information' field.",
                "",
            ]

        field_lines = [
            line
            for handle, value in snapshot.fields.items()
            if (line := format_field_line(handle, value, snapshot.field_labels.get(handle))) is not None
        ]
        if field_lines:
            if snapshot.field_labels:
                format_hint = 'Format: [field_handle] "Display Label": value'
            else:
                format_hint = "Format: [field_handle]: value"
            out += [
                "=== FIELD VALUES (All Visible Content) ===",
                "The following are ALL the field values currently visible on the page.",
                format_hint,
                "CRITICAL: The field handle is shown in [BRACKETS]. This is what you MUST use when updating fields.",
                "DO NOT create your own field names. DO NOT convert display labels to snake_case. "
                "USE THE EXACT TEXT IN [BRACKETS].",
                "",
                *field_lines,
                "",
            ]

        return out

    def build_agent_messages(
        self,
        user_message: str,
        document_text: str,
        selected_text: str,
        history: Iterable[ChatMessage | dict[str, Any]],
    ) -> list[dict[str, str]]:
        """
        Build messages for the in-editor writing assistant.

        The document (and the selection, when it differs from the document)
        is appended to the user message under literal delimiter headings.
        """
        has_selection = bool(selected_text) and selected_text != document_text

        system_parts = [
            "You are an AI writing assistant integrated into a rich text editor. "
            "You help users write, edit, and improve their content.",
        ]
        if document_text:
            system_parts.append(
                f"The full document content is included below the user's message (marked '{DOCUMENT_DELIMITER}'). "
                "Answer questions about 'this document' or 'the content' by referencing this provided text."
            )
        if has_selection:
            system_parts.append(
                f"Selected text is marked '{SELECTION_DELIMITER}'. "
                "Questions about 'this text' or 'the selection' refer to this."
            )
        system_parts.append("Provide clear, actionable text that can be directly inserted into the document.")

        context_message = user_message
        if document_text:
            context_message += f"\n\n{DOCUMENT_DELIMITER}\n{document_text}"
        if has_selection:
            context_message += f"\n\n{SELECTION_DELIMITER}\n{selected_text}"

        return [
            {"role": "system", "content": "\n\n".join(system_parts)},
            *history_entries(history),
            {"role": "user", "content": context_message},
        ]

    def build_action_prompt(self, action: str, payload: dict[str, Any]) -> ActionPrompt:
        return build_action_prompt(action, payload)
