"""
Seed the database with a sample portfolio.
Positions are opened through BUY transactions and then marked to sample prices.
"""
from datetime import datetime

from config.settings import get_settings
from growguard.core.portfolio_manager import PortfolioManager
from growguard.models.base import SessionLocal, init_db
from growguard.utils.constants import InvestmentSector
from growguard.utils.formatting import format_wan
from growguard.utils.logging import configure_logging

SAMPLE_TRADES = [
    # stock_code, stock_name, sector, quantity, price, commission, date, risk_level
    ('002594', '比亚迪', InvestmentSector.AUTO_DRIVING, 1000, 180.5, 90.25, datetime(2024, 1, 10), 'medium'),
    ('300750', '宁德时代', InvestmentSector.NEW_ENERGY, 800, 165.8, 66.32, datetime(2024, 1, 8), 'medium'),
    ('002415', '海康威视', InvestmentSector.AI_COMPUTING, 1200, 28.5, 17.1, datetime(2024, 1, 5), 'high'),
    ('000858', '五粮液', InvestmentSector.ADVANCED_MANUFACTURING, 500, 150.0, 37.5, datetime(2024, 1, 3), 'low'),
    ('600519', '贵州茅台', InvestmentSector.ADVANCED_MANUFACTURING, 200, 1800.0, 180.0, datetime(2024, 1, 2), 'low'),
]

SAMPLE_PRICES = [
    {'stock_code': '002594', 'current_price': 185.2},
    {'stock_code': '300750', 'current_price': 172.5},
    {'stock_code': '002415', 'current_price': 31.2},
    {'stock_code': '000858', 'current_price': 145.0},
    {'stock_code': '600519', 'current_price': 1850.0},
]

def seed():
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    init_db()

    db = SessionLocal()
    try:
        print("🌱 开始初始化示例数据...")
        manager = PortfolioManager(db)

        portfolio = manager.create_portfolio(
            '长盈智投组合', '专注于AI、新能源、军工等成长赛道的投资组合'
        )
        print(f"✅ 投资组合创建成功: {portfolio.name}")

        manager.update_discipline(
            portfolio.id,
            stop_loss_percent=0.1,
            take_profit_percent=0.2,
            max_position_weight=0.3,
            max_sector_weight=0.4,
            rebalance_threshold=0.05,
        )
        print("✅ 纪律设置创建成功")

        for code, name, sector, quantity, price, commission, date, risk_level in SAMPLE_TRADES:
            manager.record_transaction(
                portfolio.id, code, name, 'BUY', quantity, price,
                commission=commission, date=date, reason='建仓',
                sector=sector.value, risk_level=risk_level
            )
            print(f"✅ 持仓创建成功: {name}")

        manager.refresh_prices(SAMPLE_PRICES, portfolio_id=portfolio.id)
        portfolio = manager.get_portfolio(portfolio.id)

        print("🎉 示例数据初始化完成！")
        print(f"📈 持仓数量: {len(manager.list_positions(portfolio.id))}")
        print(f"💰 总市值: {format_wan(portfolio.total_value)}")
        print(f"📊 总盈亏: ¥{portfolio.total_pnl / 1000:.1f}K ({portfolio.total_pnl_percent:.2f}%)")
    finally:
        db.close()

if __name__ == "__main__":
    seed()
