"""Key-case folding helpers.

Purpose
-------
Let sources written in ``snake_case`` or ``"spaced keys"`` answer lookups for
items declared in little camel case (``someKey``) without rewriting the source.

Contents
--------
* :func:`to_camel_case` – drop ``" "`` / ``"_"`` delimiters and capitalise the
  following character.
* :func:`to_little_case` – lowercase the leading upper-case run.
* :func:`to_little_camel_case` – the composition used by key matching.
"""

from __future__ import annotations

_DELIMITERS = frozenset({" ", "_"})


def to_camel_case(text: str) -> str:
    """Join delimiter-separated words, capitalising every word after the first.

    A leading capital survives, runs of capitals are lowercased except for
    the last one when it starts a new lowercase word.

    Examples
    --------
    >>> to_camel_case("some_key"), to_camel_case("SOMEKey10"), to_camel_case("_some_key3")
    ('someKey', 'SomeKey10', 'someKey3')
    """

    if not text:
        return text
    out: list[str] = []
    capitalize_next = text[0].isupper()
    lowercase_next = False
    previous_is_uppercase = False
    for char in text:
        if char in _DELIMITERS:
            capitalize_next = bool(out)
            lowercase_next = False
            previous_is_uppercase = False
        elif capitalize_next:
            out.append(char.upper())
            capitalize_next = False
            lowercase_next = True
        elif lowercase_next:
            out.append(char.lower())
            if char.islower():
                lowercase_next = False
                if previous_is_uppercase:
                    previous_is_uppercase = False
                    out[-2] = out[-2].upper()
            else:
                previous_is_uppercase = True
        else:
            out.append(char)
    return "".join(out) if out else text


def to_little_case(text: str) -> str:
    """Lowercase the leading capitals of *text*.

    Examples
    --------
    >>> to_little_case("TCPService"), to_little_case("OK"), to_little_case("Service")
    ('tcpService', 'ok', 'service')
    """

    if all(char.isupper() for char in text):
        return text.lower()
    first_lower = next((index for index, char in enumerate(text) if char.islower()), -1)
    if first_lower in (-1, 0):
        return text
    if first_lower == 1:
        return text[0].lower() + text[1:]
    return text[: first_lower - 1].lower() + text[first_lower - 1 :]


def to_little_camel_case(text: str) -> str:
    """Return the little camel case form used when matching source keys.

    Examples
    --------
    >>> [to_little_camel_case(key) for key in ("some_key2_", "some_0key5", "some key9")]
    ['someKey2', 'some0key5', 'someKey9']
    """

    return to_little_case(to_camel_case(text))


__all__ = ["to_camel_case", "to_little_camel_case", "to_little_case"]
