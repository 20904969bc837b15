from poscore.schemas.orders import CamelModel


class DailyProfit(CamelModel):
    revenue: float
    cost: float
    profit: float
    order_count: int


class ProfitAnalytics(CamelModel):
    total_revenue: float
    total_cost: float
    total_profit: float
    average_profit_margin: float
    order_count: int
    profit_by_day: dict[str, DailyProfit]
