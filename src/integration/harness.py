"""
Local deployment harness.

In-process stand-in for the external deploy/test harness: it deploys mock
tokens and the platform, funds accounts and seeds pools, then gets out of the
way. Everything it does goes through the public token / ledger operations.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from ..core.ledger import ExchangeLedger, LiquidityResult
from ..core.platform import DexPlatform
from ..state.balances import Address, Amount
from ..state.tokens import FungibleAsset
from ..state.units import parse_units
from .config import DexConfig, load_config


logger = logging.getLogger(__name__)


class LocalHarness:
    def __init__(self, config: Optional[DexConfig] = None) -> None:
        self.config = config or load_config()
        self.deployer: Address = self.config.harness.deployer
        self.ledger = ExchangeLedger(self.config.ledger)
        self.tokens: Dict[str, FungibleAsset] = {}
        self.platform: Optional[DexPlatform] = None

    def deploy_token(
        self,
        name: str,
        symbol: str,
        initial_supply: Amount,
        *,
        owner: Optional[Address] = None,
        decimals: int = 18,
    ) -> FungibleAsset:
        if symbol in self.tokens:
            raise ValueError(f"token {symbol} already deployed")
        token = FungibleAsset(name, symbol, decimals)
        if initial_supply:
            token.mint(owner or self.deployer, initial_supply)
        self.ledger.register_asset(token)
        self.tokens[symbol] = token
        logger.debug("deployed %s at %s supply=%d", symbol, token.address, initial_supply)
        return token

    def deploy_tokens(self) -> Dict[str, FungibleAsset]:
        for spec in self.config.harness.tokens:
            self.deploy_token(spec.name, spec.symbol, spec.initial_supply, decimals=spec.decimals)
        return dict(self.tokens)

    def deploy_platform(self) -> DexPlatform:
        self.platform = DexPlatform.from_config(self.ledger, self.tokens, self.config.platform)
        return self.platform

    def fund(self, account: Address, symbol: str, amount: Amount) -> None:
        self.tokens[symbol].transfer(self.deployer, account, amount)

    def fund_all(self, account: Address, symbols: Optional[Iterable[str]] = None) -> None:
        """Send `harness.fund_amount` whole units of every (or each listed) token to `account`."""
        for symbol in symbols or list(self.tokens):
            token = self.tokens[symbol]
            self.fund(account, symbol, parse_units(self.config.harness.fund_amount, token.decimals))

    def add_liquidity(self, provider: Address, symbol_a: str, symbol_b: str, amount_a: Amount, amount_b: Amount) -> LiquidityResult:
        token_a = self.tokens[symbol_a]
        token_b = self.tokens[symbol_b]
        token_a.approve(provider, self.ledger.address, amount_a)
        token_b.approve(provider, self.ledger.address, amount_b)
        return self.ledger.add_liquidity(token_a, token_b, amount_a, amount_b, provider)

    def seed_liquidity(self) -> None:
        for seed in self.config.harness.seed_liquidity:
            self.add_liquidity(self.deployer, seed.assets[0], seed.assets[1], seed.amounts[0], seed.amounts[1])

    def setup(self) -> DexPlatform:
        """Deploy tokens and platform, then seed the configured pools."""
        self.deploy_tokens()
        platform = self.deploy_platform()
        self.seed_liquidity()
        return platform
