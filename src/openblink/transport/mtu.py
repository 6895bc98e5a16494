"""MTU negotiation with ordered fallback strategies."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING

from ..exceptions import NegotiationDegraded
from ..protocol import (
    ATT_OVERHEAD,
    DATA_HEADER_SIZE,
    DEFAULT_MTU,
    REQUESTED_MTU,
    parse_mtu_advertisement,
)

if TYPE_CHECKING:
    from ..models.session import Session

_LOGGER = logging.getLogger(__name__)

MtuStrategy = Callable[["Session"], Awaitable[int]]


async def request_mtu(session: Session) -> int:
    """Ask the link for REQUESTED_MTU and use whatever is granted.

    Only backends whose client exposes ``request_mtu`` support this. When
    the request is supported but fails, DEFAULT_MTU is used and later
    strategies are skipped.
    """
    requester = getattr(session.client, "request_mtu", None)
    if requester is None:
        raise NegotiationDegraded("Active MTU negotiation not supported")

    try:
        granted = await requester(REQUESTED_MTU)
    except Exception as e:
        _LOGGER.warning("MTU negotiation failed, using default MTU %d: %s", DEFAULT_MTU, e)
        return DEFAULT_MTU

    _LOGGER.debug("Negotiated MTU: %d", granted)
    return int(granted)


async def read_advertised_mtu(session: Session) -> int:
    """Read the raw MTU the device advertises and strip the ATT overhead."""
    try:
        value = await session.client.read_gatt_char(session.mtu_characteristic)
        device_mtu = parse_mtu_advertisement(bytes(value))
    except Exception as e:
        raise NegotiationDegraded(f"Failed to read device MTU: {e}") from e

    _LOGGER.debug("Device negotiated MTU (uint16): %d", device_mtu)
    return device_mtu - ATT_OVERHEAD


DEFAULT_STRATEGIES: tuple[MtuStrategy, ...] = (request_mtu, read_advertised_mtu)


class MtuNegotiator:
    """Determine usable frame size for a connection.

    Strategies run top to bottom. Each returns an MTU or raises
    NegotiationDegraded to pass to the next one. DEFAULT_MTU always
    succeeds, so negotiate() never fails.
    """

    def __init__(self, strategies: Sequence[MtuStrategy] = DEFAULT_STRATEGIES):
        self.strategies = tuple(strategies)

    async def negotiate(self, session: Session) -> int:
        """Negotiate the MTU for one session.

        Args:
            session: Live session (borrowed for this call only)

        Returns:
            MTU with room for at least one DATA payload byte
        """
        for strategy in self.strategies:
            try:
                mtu = await strategy(session)
            except NegotiationDegraded as e:
                _LOGGER.info("%s", e)
                continue

            if mtu - DATA_HEADER_SIZE < 1:
                _LOGGER.warning(
                    "Ignoring unusable MTU %d from %s", mtu, getattr(strategy, "__name__", strategy)
                )
                continue

            return mtu

        _LOGGER.info("Using default MTU: %d", DEFAULT_MTU)
        return DEFAULT_MTU
