from __future__ import annotations


class InvalidOutcomeError(ValueError):
    pass


class MarketNotFoundError(LookupError):
    def __init__(self, market_id: str) -> None:
        super().__init__(f"market {market_id} not found")
        self.market_id = market_id


class MarketStateError(RuntimeError):
    def __init__(self, market_id: str, status: str | None, action: str) -> None:
        super().__init__(f"cannot {action} market {market_id} with status {status}")
        self.market_id = market_id
        self.status = status
        self.action = action
