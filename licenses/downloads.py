"""Download locations for licensed beat files."""

from typing import Any, Dict, Optional

# Beat fields tried in order for each file category
DOWNLOAD_URL_FIELDS = {
    'mp3': ('mp3_url', 'preview_url', 'download_url'),
    'wav': ('wav_url', 'download_url', 'audio_url'),
    'stems': ('stems_url',),
    'trackouts': ('trackouts_url',),
}

def get_download_url(beat: Dict[str, Any], file_type: str) -> Optional[str]:
    """Resolve where a file category of a beat is stored.

    Returns:
        The URL, or None for unsupported file types and missing files
    """
    for field in DOWNLOAD_URL_FIELDS.get(file_type, ()):
        if beat.get(field):
            return beat[field]
    return None
