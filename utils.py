"""
Utility functions for safe console output on VPS with latin-1 encoding
"""
import uuid


def safe_print(msg):
    """
    Print to console with fallback for unicode encoding errors.
    Needed because banners carry symbols that latin-1 consoles can't handle.
    """
    try:
        print(msg)
    except UnicodeEncodeError:
        # Fallback: replace non-ASCII characters with '?'
        safe_msg = msg.encode('ascii', errors='replace').decode('ascii')
        print(safe_msg)


def new_id(prefix=''):
    """Short random identifier, e.g. for bots and players without a uid"""
    return f"{prefix}{uuid.uuid4().hex[:10]}"
