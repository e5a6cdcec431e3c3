"""Parser for the parameters of a WWW-Authenticate challenge."""

from dataclasses import dataclass, field

from yarl import URL

from ..exceptions import ChallengeParseError


@dataclass
class BearerChallenge:
    """Parameters of a Bearer challenge.

    ``scope`` may appear several times; each occurrence is appended in order.
    Unrecognized parameters are kept in ``other``.
    """

    realm: str | None = None
    service: str | None = None
    scope: list[str] = field(default_factory=list)
    other: list[tuple[str, str]] = field(default_factory=list)

    def add(self, key: str, value: str) -> None:
        if key == "realm":
            self.realm = value
        elif key == "service":
            self.service = value
        elif key == "scope":
            self.scope.append(value)
        else:
            self.other.append((key, value))

    @property
    def url(self) -> URL | None:
        """Token request URL built from the realm, service and scopes.

        Query items already present in the realm are kept. Returns None
        when the challenge has no realm.
        """
        if self.realm is None:
            return None

        realm = URL(self.realm)
        query = list(realm.query.items())
        if self.service is not None:
            query.append(("service", self.service))
        query.extend(("scope", scope) for scope in self.scope)
        return realm.with_query(query)


def _is_key_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def _parse_pair(text: str, position: int) -> tuple[str, str, int] | None:
    """Parse one ``key="value"`` pair starting at position.

    Returns the key, the value and the position after the closing quote,
    or None if the text at position is not a pair.
    """
    end = position
    while end < len(text) and _is_key_char(text[end]):
        end += 1
    key = text[position:end]
    if not key or text[end : end + 2] != '="':
        return None

    value_start = end + 2
    value_end = text.find('"', value_start)
    if value_end <= value_start:
        return None
    return key, text[value_start:value_end], value_end + 1


def parse_challenge(text: str) -> BearerChallenge:
    """Parse challenge parameters, with the leading scheme already removed.

    Args:
        text: e.g. ``realm="https://auth.example.com/token",service="registry.example.com"``

    Returns:
        Parsed challenge

    Raises:
        ChallengeParseError: If the text does not start with a pair, or
            characters remain after the last pair
    """
    challenge = BearerChallenge()

    pair = _parse_pair(text, 0)
    if pair is None:
        raise ChallengeParseError("Challenge does not start with a parameter", text)
    key, value, position = pair
    challenge.add(key, value)

    while position < len(text):
        if text[position] != ",":
            break
        start = position + 1
        # Tolerate optional whitespace after the separator
        while start < len(text) and text[start] == " ":
            start += 1
        pair = _parse_pair(text, start)
        if pair is None:
            break
        key, value, position = pair
        challenge.add(key, value)

    if position != len(text):
        raise ChallengeParseError("Unparsed characters in challenge", text[position:])

    return challenge


def split_challenge(header: str) -> tuple[str, str]:
    """Split a WWW-Authenticate header value into its scheme and parameters."""
    scheme, _, params = header.strip().partition(" ")
    return scheme, params.strip()
