"""Network-keyed deployment parameters.

The table is static data. ``ParameterTable.resolve`` never raises: an unknown
network yields an empty ``ParameterSet`` so that a step needing a value fails
at the point of use with a ``ConfigurationError`` naming the missing key.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Union

from .errors import ConfigurationError

ParamValue = Union[str, int]

HOUR = 3600
DAY = 24 * HOUR

DEPLOYMENT_PARAMS: Dict[str, Dict[str, ParamValue]] = {
    "mainnet": {
        "dexRouter": "",
        "hexToken": "",
        "usdcAddress": "",
        "usdcPriceFeed": "",
        "feeReceiver": "",
    },
    "fuji": {
        "dexRouter": "0x3705aBF712ccD4fc56Ee76f0BD3009FD4013ad75",
        "hexToken": "0xEb06b60E0b3A421a7100A3b09fd25DE119831694",
        "usdcAddress": "0x8025e948a7d494A845588099cb861a903EAdcF93",
        "usdcPriceFeed": "0x7898AcCC83587C3C55116c5230C17a6Cd9C71bad",
        "feeReceiver": "0x4364E1d16526c954b029b6cf9335CB1b0eaAfB69",
        "teamWallet": "0x4364E1d16526c954b029b6cf9335CB1b0eaAfB69",
        "escrowOverviewWallet": "0xd1C56Cf01B810e6AD2c22A583A7DeaB7F1d5eFfa",
        "feeRate": 100,  # 10%
        "minStakingDuration": 1,  # days
        "maxStakingDuration": 10,  # days
        "sacrificeStartTime": HOUR,
        "sacrificeDuration": 1,  # days
        "airdropStartTime": HOUR,
        "airdropDuration": 1,  # days
        "rateForSacrifice": 800,
        "rateForAirdrop": 200,
        "sacrificeDistRate": 750,
        "sacrificeLiquidityRate": 250,
        "airdropDistRateForHexHolder": 1000,
        "airdropDistRateForHEXITHolder": 9000,
        "hexitDistRateForStaking": 50,  # 5%
    },
}


class ParameterSet(Mapping[str, ParamValue]):
    """Read-only view over one network's parameters."""

    def __init__(self, network: str, values: Optional[Mapping[str, ParamValue]] = None) -> None:
        self._network = network
        self._values: Mapping[str, ParamValue] = MappingProxyType(dict(values or {}))

    @property
    def network(self) -> str:
        return self._network

    def __getitem__(self, key: str) -> ParamValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ParameterSet({self._network!r}, {dict(self._values)!r})"

    def require(self, key: str) -> ParamValue:
        """Return ``key`` or raise ``ConfigurationError`` if it is absent or blank."""

        value = self._values.get(key)
        if value is None or value == "":
            raise ConfigurationError(
                f"Parameter '{key}' is not configured for network '{self._network}'"
            )
        return value

    def require_address(self, key: str) -> str:
        value = self.require(key)
        if not isinstance(value, str):
            raise ConfigurationError(f"Parameter '{key}' is not an address: {value!r}")
        return value

    def require_int(self, key: str) -> int:
        value = self.require(key)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(f"Parameter '{key}' is not an integer: {value!r}")
        return value


class ParameterTable:
    def __init__(self, rows: Mapping[str, Mapping[str, Any]]) -> None:
        self._rows: Mapping[str, ParameterSet] = MappingProxyType(
            {network: ParameterSet(network, values) for network, values in rows.items()}
        )

    @classmethod
    def default(cls) -> "ParameterTable":
        return cls(DEPLOYMENT_PARAMS)

    @property
    def networks(self) -> tuple[str, ...]:
        return tuple(self._rows)

    def resolve(self, network: str) -> ParameterSet:
        return self._rows.get(network) or ParameterSet(network)
