from rt_translate.services.languages import get_available_languages, get_language_name, has_speech, is_supported


def test_available_languages_shape():
    languages = get_available_languages()
    assert languages[0] == {"code": "en", "name": "English"}
    assert all(set(lang) == {"code", "name"} for lang in languages)


def test_supported_codes():
    assert is_supported("de")
    assert is_supported("asl")
    assert not is_supported("pt")
    assert not is_supported(None)


def test_sign_language_has_no_speech():
    assert has_speech("es")
    assert not has_speech("asl")
    assert not has_speech("zz")


def test_language_names():
    assert get_language_name("fr") == "French"
    assert get_language_name("pt") == "PT"
