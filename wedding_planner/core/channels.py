from __future__ import annotations

import json
from collections.abc import Iterable

from wedding_planner.core.enums import Channel
from wedding_planner.core.exceptions import ChannelDecodeError


def encode_channels(channels: Iterable[Channel | str]) -> str:
    names = [channel.value if isinstance(channel, Channel) else str(channel) for channel in channels]
    return json.dumps(names)


def decode_channels(raw: str | None) -> list[str]:
    if raw is None:
        raise ChannelDecodeError(details={"raw": None})
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise ChannelDecodeError(details={"raw": str(raw)[:200]}) from exc
    if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
        raise ChannelDecodeError(details={"raw": str(raw)[:200]})
    return parsed
