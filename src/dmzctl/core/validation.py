"""Input validation for router settings.

Only the DMZ enable flag and the listen port are actually validated;
addresses and the session token are relayed to the router verbatim.
"""

from dmzctl.core.exceptions import ValidationError


DMZ_ENABLE_VALUES: frozenset[str] = frozenset({"0", "1"})

IPV6_FIREWALL_ON = "on"
IPV6_FIREWALL_OFF = "off"


def normalize_ipv6_firewall(value: str) -> str:
    """Normalize the IPv6 firewall flag.

    The value is lowercased; "on" and "off" map to their canonical form and
    anything else is kept as-is so the router can decide what to do with it.
    """
    lowered = (value or "").lower()
    if lowered == IPV6_FIREWALL_ON:
        return IPV6_FIREWALL_ON
    if lowered == IPV6_FIREWALL_OFF:
        return IPV6_FIREWALL_OFF
    return lowered


def is_valid_dmz_enable(value: str) -> bool:
    """Check if value is an accepted DMZ enable flag."""
    return value in DMZ_ENABLE_VALUES


def validate_dmz_enable(value: str) -> str:
    """Validate the DMZ enable flag.

    Args:
        value: Flag to validate

    Returns:
        The validated flag

    Raises:
        ValidationError: If value is not exactly "0" or "1"
    """
    if not is_valid_dmz_enable(value):
        raise ValidationError(
            f"Invalid DMZ enable flag: '{value}'",
            hint="Use 1 to enable or 0 to disable the DMZ",
        )
    return value


def validate_port(value: str) -> str:
    """Validate a listen port given as a string.

    Args:
        value: Port number as text

    Returns:
        The port with surrounding whitespace removed

    Raises:
        ValidationError: If port is not a number between 1 and 65535
    """
    text = str(value).strip()
    try:
        number = int(text)
    except ValueError:
        raise ValidationError(
            f"Invalid port number: '{value}'",
            hint="Port must be a number between 1 and 65535",
        )

    if not 1 <= number <= 65535:
        raise ValidationError(
            f"Invalid port number: {value}",
            hint="Port must be between 1 and 65535",
        )

    return text
