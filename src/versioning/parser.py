"""Token parsing utilities for package requests."""

from typing import Optional, Tuple

from .models import PackageRequest


def tokenize_rightmost_colon(s: str) -> Tuple[str, Optional[str]]:
    """Return (identifier, spec or None) using the rightmost-colon rule."""
    s = s.strip()
    if ':' not in s:
        return s, None
    parts = s.rsplit(':', 1)
    identifier = parts[0].strip()
    spec_part = parts[1].strip() if len(parts) > 1 else ''
    spec = spec_part if spec_part else None
    return identifier, spec


def parse_cli_token(token: str, version: Optional[str] = None) -> PackageRequest:
    """Parse ``Id`` or ``Id:Version`` into a PackageRequest.

    An explicit ``version`` (from --version) wins over the token suffix;
    ``latest`` is the same as no version at all.
    """
    identifier, spec = tokenize_rightmost_colon(token)
    chosen = version if version else spec
    if chosen is not None and chosen.strip().lower() in ('', 'latest'):
        chosen = None
    return PackageRequest(
        identifier=identifier,
        requested_version=chosen.strip() if chosen else None,
        raw_token=token,
    )
