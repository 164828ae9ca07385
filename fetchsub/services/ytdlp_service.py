"""
YT-DLP service module.

Handles yt-dlp binary execution with timeouts and cookies, and classifies
failures from the tool's stderr so callers can report something useful.
"""

import os
import re
import subprocess
from typing import Optional, Tuple

from fetchsub.config import YTDLP_BINARY, YTDLP_COOKIES_FILE


TIMEOUT = "timeout"
SUBTITLES_DISABLED = "subtitles_disabled"
PRIVATE = "private"
UNAVAILABLE = "unavailable"
AUTH = "auth"
NO_SUBTITLES = "no_subtitles"
UNKNOWN = "unknown"

# Checked in order; the first matching group wins
ERROR_PATTERNS = [
    (TIMEOUT, [
        r'timed out',
        r'timeout',
    ]),
    (SUBTITLES_DISABLED, [
        r'subtitles are disabled',
        r'transcripts? (?:is|are) disabled',
        r'There are no subtitles',
        r'no subtitles',
    ]),
    (PRIVATE, [
        r'Private video',
        r'This video is private',
    ]),
    (UNAVAILABLE, [
        r'Video unavailable',
        r'This video is not available',
        r'has been removed',
        r'does not exist',
        r'Incomplete YouTube ID',
    ]),
    (AUTH, [
        r'Sign in to confirm you\'?re not a bot',
        r'requires? authentication',
        r'HTTP Error 403',
        r'age.restricted',
        r'members.?only',
    ]),
]


def classify_ytdlp_error(stderr: Optional[str]) -> str:
    """
    Classify a yt-dlp failure from its stderr.

    Returns one of: timeout, subtitles_disabled, private, unavailable, auth, unknown.
    """
    if not stderr:
        return UNKNOWN
    for kind, patterns in ERROR_PATTERNS:
        if any(re.search(pattern, stderr, re.IGNORECASE) for pattern in patterns):
            return kind
    return UNKNOWN


def run_ytdlp_binary(args: list, timeout: int = 60) -> Tuple[str, str, int]:
    """
    Run yt-dlp standalone binary with given arguments.

    Args:
        args: List of yt-dlp command arguments
        timeout: Command timeout in seconds

    Returns:
        Tuple of (stdout, stderr, return_code). A timeout is reported as
        ("", "Command timed out", 1) so it classifies as a timeout.
    """
    cmd = [YTDLP_BINARY]

    if YTDLP_COOKIES_FILE and os.path.exists(YTDLP_COOKIES_FILE):
        cmd.extend(['--cookies', YTDLP_COOKIES_FILE])

    cmd.extend(args)

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout
        )
        return result.stdout, result.stderr, result.returncode

    except subprocess.TimeoutExpired:
        return "", "Command timed out", 1
    except Exception as e:
        return "", str(e), 1


def get_ytdlp_version() -> Optional[str]:
    """Version string of the configured binary, or None if it cannot be run."""
    if not os.path.exists(YTDLP_BINARY):
        return None
    stdout, _, returncode = run_ytdlp_binary(['--version'], timeout=5)
    if returncode != 0:
        return None
    return stdout.strip() or None
