# trading/bybit_client.py
import asyncio
from typing import Any, Dict, List
from pybit.exceptions import FailedRequestError, InvalidRequestError
from pybit.unified_trading import HTTP
from trading.config import TradingConfig
from trading.stats import TradingStats, to_float, calculate_trading_stats
from utils.logger import get_logger


class BybitClient:
    """Асинхронная обертка над Bybit API (только данные аккаунта)"""

    def __init__(self, config: TradingConfig, http: Any = None):
        self.logger = get_logger(__name__)
        self.config = config
        self.http = http if http is not None else HTTP(
            api_key=config.api_key,
            api_secret=config.api_secret,
            testnet=config.testnet,
            timeout=10,
            recv_window=5_000
        )

    async def _call(self, method: str, **params) -> Dict[str, Any]:
        """
        Вызов метода pybit в отдельном потоке

        Raises:
            RuntimeError: Если Bybit вернул retCode != 0
        """
        def _request():
            return getattr(self.http, method)(**params)

        try:
            resp = await asyncio.to_thread(_request)
        except (InvalidRequestError, FailedRequestError) as e:
            raise RuntimeError(f"Ошибка Bybit {method}: {e}") from e

        if not isinstance(resp, dict) or resp.get("retCode") != 0:
            message = resp.get("retMsg") if isinstance(resp, dict) else resp
            raise RuntimeError(f"Ошибка Bybit {method}: {message}")

        return resp.get("result") or {}

    async def validate_credentials(self) -> bool:
        """
        Проверка ключей запросом баланса

        Returns:
            True если ключи рабочие, False иначе
        """
        try:
            await self._call("get_wallet_balance", accountType="UNIFIED")
            return True
        except Exception as e:
            self.logger.warning(f"Ключи Bybit не прошли проверку: {e}")
            return False

    async def get_balance(self) -> float:
        """Общий баланс UNIFIED аккаунта (totalEquity)"""
        result = await self._call("get_wallet_balance", accountType="UNIFIED")
        accounts = result.get("list", [])

        if not accounts:
            return 0.0

        return to_float(accounts[0].get("totalEquity"))

    async def get_positions(self) -> List[Dict[str, Any]]:
        """
        Открытые позиции USDT perpetual

        Returns:
            Список позиций в формате дашборда
        """
        result = await self._call("get_positions", category="linear", settleCoin="USDT")
        positions = []

        for pos in result.get("list", []):
            pnl = to_float(pos.get("unrealisedPnl"))
            margin = to_float(pos.get("positionIM"))
            roe = pnl / margin * 100 if margin > 0 else 0.0
            positions.append({
                "id": f"{pos.get('symbol')}-{pos.get('side')}-{pos.get('positionIdx', 0)}",
                "symbol": pos.get("symbol"),
                "side": pos.get("side"),
                "size": to_float(pos.get("size")),
                "entryPrice": to_float(pos.get("avgPrice") or pos.get("entryPrice")),
                "markPrice": to_float(pos.get("markPrice")),
                "currentPrice": to_float(pos.get("markPrice")),
                "pnl": pnl,
                "pnlPercentage": roe,
                "roe": roe,
                "status": "Active",
                "type": "Isolated" if pos.get("tradeMode") == 1 else "Cross",
                "leverage": to_float(pos.get("leverage"))
            })

        return positions

    async def get_executions(self, limit: int = 100) -> List[Dict[str, Any]]:
        result = await self._call("get_executions", category="linear", limit=limit)
        return result.get("list", [])

    async def get_trading_stats(self, limit: int = 100) -> TradingStats:
        executions = await self.get_executions(limit)
        stats = calculate_trading_stats(executions)
        self.logger.info(
            f"Статистика: сделок={stats.trades_count}, winRate={stats.win_rate:.1f}%, "
            f"profitFactor={stats.profit_factor:.2f}"
        )
        return stats

    async def get_orders(self, limit: int = 20) -> List[Dict[str, Any]]:
        result = await self._call("get_order_history", category="linear", limit=limit)
        return result.get("list", [])

    async def place_order(self, **order) -> Dict[str, Any]:
        """
        Выставление ордера

        Args:
            order: Параметры ордера Bybit (symbol, side, qty обязательны)

        Returns:
            Результат Bybit (orderId, orderLinkId)

        Raises:
            ValueError: Если не указаны symbol, side или qty
        """
        if not order.get("symbol") or not order.get("side") or not order.get("qty"):
            raise ValueError("Не указаны обязательные параметры ордера (symbol, side, qty)")

        params = {
            "category": "linear",
            "orderType": "Limit",
            "timeInForce": "GTC",
            "positionIdx": 0,
            **order
        }
        params["qty"] = str(params["qty"])

        self.logger.info(
            f"Выставление {params['side']} {params['orderType']} ордера по {params['symbol']}: qty={params['qty']}"
        )

        result = await self._call("place_order", **params)
        self.logger.info(f"Ордер выставлен: orderId={result.get('orderId', '<unknown>')}")

        return result

    async def cancel_order(self, order_id: str, symbol: str) -> Dict[str, Any]:
        """
        Отмена ордера

        Raises:
            ValueError: Если не указаны order_id или symbol
        """
        if not order_id or not symbol:
            raise ValueError("Не указаны ID ордера и символ")

        result = await self._call("cancel_order", category="linear", symbol=symbol, orderId=order_id)
        self.logger.info(f"Ордер отменен: orderId={order_id} ({symbol})")

        return result
