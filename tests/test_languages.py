import pytest

pytest.importorskip("whisper")

from whispersub.exceptions import InputRequiredError  # noqa: E402
from whispersub.languages import AUTO_DETECT, list_languages, resolve_language  # noqa: E402


@pytest.mark.parametrize("reference", ["en", "EN", "english", " English "])
def test_resolve_by_code_or_name(reference):
    language = resolve_language(reference)
    assert language.code == "en"
    assert language.label == "English"


def test_auto_detect():
    assert resolve_language("auto") is AUTO_DETECT
    assert AUTO_DETECT.engine_code is None


@pytest.mark.parametrize("reference", [None, "", "klingon"])
def test_unknown_language_needs_input(reference):
    with pytest.raises(InputRequiredError) as excinfo:
        resolve_language(reference)
    assert excinfo.value.choices[0] is AUTO_DETECT
    assert len(excinfo.value.choices) == len(list_languages())
