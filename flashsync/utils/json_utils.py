# Fichier : flashsync/utils/json_utils.py

from __future__ import annotations
import json
from typing import Any, Dict, Optional


def _strip_code_fences(raw: str) -> str:
    """Remove a surrounding ```json ... ``` fence if the model added one."""
    text = raw.strip()
    if not text.startswith("```"):
        return text
    newline = text.find("\n")
    inner = text[newline + 1 :] if newline != -1 else text[3:]
    end = inner.rfind("```")
    if end != -1:
        inner = inner[:end]
    return inner.strip()


def _extract_balanced_object(text: str) -> Optional[str]:
    """
    Return the first balanced ``{...}`` block, ignoring braces inside strings.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape = False
    for index in range(start, len(text)):
        char = text[index]
        if escape:
            escape = False
            continue
        if char == "\\" and in_string:
            escape = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def load_json_object(raw: str | None) -> Dict[str, Any]:
    """
    Parse a JSON object returned by a text-generation model.

    Tries ``json.loads`` first, then strips code fences and finally extracts
    the first balanced object. Raises ``ValueError`` if no object is found.
    """
    if raw is None:
        raise ValueError("load_json_object: input is None")

    text = _strip_code_fences(str(raw))
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as first_exc:
        candidate = _extract_balanced_object(text)
        if not candidate:
            raise ValueError(f"no JSON object in model output: {first_exc}") from first_exc
        parsed = json.loads(candidate)

    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed
