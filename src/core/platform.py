"""
DEX platform facade.

Exposes the four entry points of the deployed platform contract on top of an
`ExchangeLedger`. Swap routes are fixed at construction (by default WETH->TT1
for the single hop and TT1->WETH->TT2 for the multi hop); `sender` plays the
role of the transaction signer.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence, Tuple

from ..state.balances import Address, Amount, AssetId
from ..state.tokens import FungibleAsset
from .errors import InvalidRoute
from .ledger import ExchangeLedger, LiquidityResult, SwapResult, TokenRef


class DexPlatform:
    def __init__(
        self,
        ledger: ExchangeLedger,
        *,
        single_hop_path: Sequence[TokenRef],
        multi_hop_path: Sequence[TokenRef],
    ) -> None:
        self.ledger = ledger
        self.single_hop_path = self._resolve_path(single_hop_path, hops=1)
        self.multi_hop_path = self._resolve_path(multi_hop_path, hops=2)

    @classmethod
    def from_config(
        cls,
        ledger: ExchangeLedger,
        tokens_by_symbol: Mapping[str, FungibleAsset],
        platform_config,
    ) -> "DexPlatform":
        def lookup(symbols: Sequence[str]):
            missing = [s for s in symbols if s not in tokens_by_symbol]
            if missing:
                raise InvalidRoute(f"platform route references unknown symbols: {missing}")
            return [tokens_by_symbol[s] for s in symbols]

        return cls(
            ledger,
            single_hop_path=lookup(platform_config.single_hop_path),
            multi_hop_path=lookup(platform_config.multi_hop_path),
        )

    def _resolve_path(self, path: Sequence[TokenRef], *, hops: int) -> Tuple[AssetId, ...]:
        resolved = tuple(self.ledger.asset(ref).address for ref in path)
        if len(resolved) != hops + 1:
            raise InvalidRoute(f"expected a {hops}-hop path, got {len(resolved)} assets")
        return resolved

    @property
    def address(self) -> Address:
        """Spender address token holders must approve."""
        return self.ledger.address

    def swap_single_hop_exact_amount_in(self, amount_in: Amount, amount_out_min: Amount, sender: Address) -> Amount:
        return self._swap(self.single_hop_path, amount_in, amount_out_min, sender).amount_out

    def swap_multi_hop_exact_amount_in(self, amount_in: Amount, amount_out_min: Amount, sender: Address) -> Amount:
        return self._swap(self.multi_hop_path, amount_in, amount_out_min, sender).amount_out

    def _swap(self, path: Tuple[AssetId, ...], amount_in: Amount, amount_out_min: Amount, sender: Address) -> SwapResult:
        return self.ledger.swap_exact_in(path, amount_in, amount_out_min, sender)

    def add_liquidity(
        self,
        token_a: TokenRef,
        token_b: TokenRef,
        amount_a: Amount,
        amount_b: Amount,
        sender: Address,
    ) -> LiquidityResult:
        return self.ledger.add_liquidity(token_a, token_b, amount_a, amount_b, sender)

    def remove_liquidity(
        self,
        token_a: TokenRef,
        token_b: TokenRef,
        sender: Address,
        *,
        shares: Optional[Amount] = None,
    ) -> LiquidityResult:
        return self.ledger.remove_liquidity(token_a, token_b, sender, shares=shares)

    # Contract-style aliases.
    swapSingleHopExactAmountIn = swap_single_hop_exact_amount_in
    swapMultiHopExactAmountIn = swap_multi_hop_exact_amount_in
    addLiquidity = add_liquidity
    removeLiquidity = remove_liquidity
