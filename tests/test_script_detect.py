from revbot.lang.script_detect import detect_script, detect_voice_locale


def test_latin_text_uses_default_hindi_voice() -> None:
    assert detect_voice_locale("Hello, how are you?") == "hi-IN"


def test_devanagari_sentence() -> None:
    assert detect_voice_locale("आप कैसे हैं?") == "hi-IN"


def test_each_indic_script_maps_to_its_locale() -> None:
    assert detect_voice_locale("మీరు ఎలా ఉన్నారు") == "te-IN"
    assert detect_voice_locale("நீங்கள் எப்படி இருக்கிறீர்கள்") == "ta-IN"
    assert detect_voice_locale("તમે કેમ છો") == "gu-IN"
    assert detect_voice_locale("আপনি কেমন আছেন") == "bn-IN"


def test_first_script_in_priority_order_wins() -> None:
    # Bengali appears first in the text, Devanagari wins by priority.
    assert detect_voice_locale("আমি ठीक हूँ") == "hi-IN"
    assert detect_voice_locale("RV400 வணக்கம் నమస్తే") == "te-IN"


def test_mixed_latin_and_script_text() -> None:
    assert detect_voice_locale("RV400 ki range 150 km है") == "hi-IN"
    assert detect_script("Booking ₹499 મા") == "gujarati"


def test_empty_or_missing_text_falls_back() -> None:
    assert detect_voice_locale("") == "hi-IN"
    assert detect_voice_locale(None) == "hi-IN"
    assert detect_voice_locale("   ", default="en-IN") == "en-IN"
    assert detect_script("plain ascii") is None
