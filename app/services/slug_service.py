"""
Add-on id generation: turns a display name into a collision-free slug.
"""

import re
from exceptions import ValidationException

_ALLOWED_CHAR = re.compile(r'[a-z0-9_\-]')
_NUMBERED_SUFFIX = re.compile(r'^(.+_)([0-9]+)$')


def clean_id(raw_id):
    """
    Normalize an add-on id.

    Lowercases the input and replaces every character outside [a-z0-9_-]
    with '-', one for one, so the length is preserved.

    Returns:
        str or None: cleaned id, None for empty or non-string input
    """
    if not isinstance(raw_id, str) or not raw_id:
        return None

    return ''.join(_clean_char(c) for c in raw_id)


def _clean_char(char):
    lowered = char.lower()
    # Some characters lowercase to more than one code point
    if len(lowered) == 1 and _ALLOWED_CHAR.fullmatch(lowered):
        return lowered
    return '-'


def next_candidate(slug):
    """foo -> foo_1, foo_1 -> foo_2"""
    match = _NUMBERED_SUFFIX.match(slug)
    if match:
        return f"{match.group(1)}{int(match.group(2)) + 1}"
    return f"{slug}_1"


def generate_id(name, exists):
    """
    Build a free add-on id from a name.

    Args:
        name: display name of the add-on
        exists: callable telling whether an id is already taken

    Raises:
        ValidationException: if the name does not produce a valid id
    """
    addon_id = clean_id(name)
    if not addon_id:
        raise ValidationException("An add-on name is required to generate its id.")

    while exists(addon_id):
        addon_id = next_candidate(addon_id)

    return addon_id
