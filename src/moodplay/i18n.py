"""Translated UI strings."""
import os
import locale


STRINGS = {
    "en": {
        # Notifications
        "now_playing": "Now playing: {title}",
        "history_cleared": "History cleared successfully",

        # Views
        "pick_mood": "Pick a mood",
        "no_results": "No results found",
        "no_history": "Nothing played yet",
        "nothing_playing": "Nothing playing",
        "starting_player": "Starting player...",
        "history_songs": "{count} songs",
        "status_line": "{position} / {duration}   Vol {volume}{muted}",
        "muted": " (muted)",
        "error": "Error: {error}",

        # Control buttons
        "seek_back": "⏮ -10s",
        "play_pause": "⏯ Play/Pause",
        "seek_forward": "⏭ +10s",
        "vol_down": "🔉 Vol-",
        "vol_up": "🔊 Vol+",
        "mute": "🔇 Mute",

        # Keyboard binding labels
        "moods": "Moods",
        "history": "History",
        "clear_history": "Clear History",
        "back_to_player": "Back to Player",
        "stop": "Stop",
        "quit": "Quit",
    },
    "no": {  # Norwegian
        # Notifications
        "now_playing": "Spiller nå: {title}",
        "history_cleared": "Historikken er tømt",

        # Views
        "pick_mood": "Velg et humør",
        "no_results": "Ingen resultater funnet",
        "no_history": "Ingenting spilt ennå",
        "nothing_playing": "Ingenting spilles",
        "starting_player": "Starter spiller...",
        "history_songs": "{count} sanger",
        "status_line": "{position} / {duration}   Vol {volume}{muted}",
        "muted": " (dempet)",
        "error": "Feil: {error}",

        # Control buttons
        "seek_back": "⏮ -10s",
        "play_pause": "⏯ Spill/Pause",
        "seek_forward": "⏭ +10s",
        "vol_down": "🔉 Vol-",
        "vol_up": "🔊 Vol+",
        "mute": "🔇 Demp",

        # Keyboard binding labels
        "moods": "Humør",
        "history": "Historikk",
        "clear_history": "Tøm historikk",
        "back_to_player": "Tilbake til spiller",
        "stop": "Stopp",
        "quit": "Avslutt",
    },
}


def get_locale() -> str:
    """Return the two-letter language code to use (e.g. 'en', 'no')."""
    env_lang = os.environ.get("MOODPLAY_LANG")
    if env_lang:
        return env_lang.lower()[:2]

    try:
        system_locale = locale.getlocale()[0]
        if system_locale:
            # 'nb_NO' and 'nn_NO' are both served by 'no'
            code = system_locale.split('_')[0].lower()
            return "no" if code in ("nb", "nn") else code
    except (ValueError, TypeError):
        pass

    return "en"


_current_lang = get_locale()


def set_language(lang_code: str) -> None:
    global _current_lang
    _current_lang = lang_code if lang_code in STRINGS else "en"


def get_text(key: str, **kwargs) -> str:
    """Get translated text for a key.

    Falls back to English, then to the key itself.
    """
    text = STRINGS.get(_current_lang, STRINGS["en"]).get(key)
    if text is None:
        text = STRINGS["en"].get(key, key)

    if kwargs:
        try:
            return text.format(**kwargs)
        except (KeyError, ValueError):
            return text
    return text


_ = get_text
