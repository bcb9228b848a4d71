"""Recognition languages known to Whisper."""

from typing import List, Optional

from whisper.tokenizer import LANGUAGES, TO_LANGUAGE_CODE

from .exceptions import InputRequiredError
from .models import AUTO_LANGUAGE_CODE, Language

AUTO_DETECT = Language(label="Auto-detect", code=AUTO_LANGUAGE_CODE)


def list_languages() -> List[Language]:
    """Auto-detect first, then every Whisper language ordered by label."""
    languages = sorted(
        (Language(label=name.title(), code=code) for code, name in LANGUAGES.items()),
        key=lambda language: language.label,
    )
    return [AUTO_DETECT] + languages

def resolve_language(reference: Optional[str]) -> Language:
    """
    Maps a language code ("en"), name ("english") or "auto" to a Language.

    Raises:
        InputRequiredError: If the reference is empty or unknown; the
                            error's choices hold every supported language.
    """
    key = (reference or "").strip().lower()
    if key == AUTO_LANGUAGE_CODE:
        return AUTO_DETECT
    code = key if key in LANGUAGES else TO_LANGUAGE_CODE.get(key)
    if code is None:
        raise InputRequiredError(f"Unknown language '{reference}'.", choices=list_languages())
    return Language(label=LANGUAGES[code].title(), code=code)
