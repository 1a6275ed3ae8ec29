"""
Simulated payment gateway.

Never talks to a real network. The outcome depends only on the last digit
of the card number: 0-7 succeed, 8-9 are declined. Latency is drawn from an
injectable random source so tests can pin it.
"""
import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from storefront.config import settings

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Payment processed successfully"
DECLINE_MESSAGE = "Payment failed - insufficient funds"


@dataclass(frozen=True)
class SimulationResult:
    success: bool
    message: str
    processing_time_ms: float


def will_succeed(card_number) -> bool:
    """Decision rule of the simulated gateway"""
    digits = "".join(ch for ch in str(card_number or "") if ch.isdigit())
    if not digits:
        return False
    return int(digits[-1]) <= 7


class PaymentSimulator:
    """Single-attempt simulated charge with randomized latency"""
    
    def __init__(
        self,
        rng: Optional[random.Random] = None,
        min_delay_ms: Optional[float] = None,
        max_delay_ms: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.rng = rng or random.Random()
        self.min_delay_ms = settings.SIMULATOR_MIN_DELAY_MS if min_delay_ms is None else min_delay_ms
        self.max_delay_ms = settings.SIMULATOR_MAX_DELAY_MS if max_delay_ms is None else max_delay_ms
        self.sleep = sleep
    
    def next_delay_ms(self) -> float:
        """Delay in [min_delay_ms, max_delay_ms)"""
        span = self.max_delay_ms - self.min_delay_ms
        return self.min_delay_ms + self.rng.random() * span
    
    async def simulate_charge(self, card_number: str, amount: float) -> SimulationResult:
        """
        Simulate one charge attempt
        
        Args:
            card_number: Card number (only the last digit matters)
            amount: Amount being charged
        
        Returns:
            Simulated gateway verdict and the latency it took
        """
        delay_ms = self.next_delay_ms()
        await self.sleep(delay_ms / 1000.0)
        
        if will_succeed(card_number):
            result = SimulationResult(True, SUCCESS_MESSAGE, delay_ms)
        else:
            result = SimulationResult(False, DECLINE_MESSAGE, delay_ms)
        
        logger.debug(
            "Simulated charge of %.2f: %s after %.0fms",
            amount, "approved" if result.success else "declined", delay_ms
        )
        return result
