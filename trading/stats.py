# trading/stats.py
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable


PROFIT_FACTOR_CAP = 999.0


@dataclass
class TradingStats:
    """Статистика закрытых сделок"""

    win_rate: float = 0.0
    profit_factor: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
    trades_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            "winRate": data["win_rate"],
            "profitFactor": data["profit_factor"],
            "averageWin": data["average_win"],
            "averageLoss": data["average_loss"],
            "tradesCount": data["trades_count"],
        }


def to_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def calculate_trading_stats(executions: Iterable[Dict[str, Any]]) -> TradingStats:
    """
    Расчет статистики по исполнениям Bybit

    Сделки с нулевым closedPnl учитываются в общем количестве,
    но не считаются ни прибыльными, ни убыточными.

    Args:
        executions: Список исполнений из /v5/execution/list

    Returns:
        TradingStats
    """
    wins = 0
    losses = 0
    total_win = 0.0
    total_loss = 0.0
    total = 0

    for execution in executions:
        total += 1
        pnl = to_float(execution.get("closedPnl"))

        if pnl > 0:
            wins += 1
            total_win += pnl
        elif pnl < 0:
            losses += 1
            total_loss += abs(pnl)

    if total_loss > 0:
        profit_factor = total_win / total_loss
    else:
        profit_factor = PROFIT_FACTOR_CAP if wins > 0 else 0.0

    return TradingStats(
        win_rate=(wins / total) * 100 if total > 0 else 0.0,
        profit_factor=profit_factor,
        average_win=total_win / wins if wins > 0 else 0.0,
        average_loss=total_loss / losses if losses > 0 else 0.0,
        trades_count=total
    )
