"""Questionary / prompt_toolkit theme for srgitops.

Questionary uses prompt_toolkit under the hood. This module defines the
central style used by the apply confirmation prompt.
"""

from __future__ import annotations

from prompt_toolkit.styles import Style

QUESTIONARY_STYLE_CONFIRM = Style.from_dict(
    {
        "qmark": "bold ansicyan",
        "question": "bold",
        "answer": "bold ansibrightyellow",
        "pointer": "bold ansibrightyellow",
        "separator": "ansibrightblack",
        "instruction": "ansibrightblack",
        "error": "bold ansired",
        "disabled": "ansibrightblack",
    }
)
