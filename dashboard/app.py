"""Streamlit dashboard for Grow Guard Investing (长盈智投)."""

import streamlit as st
import pandas as pd
import plotly.graph_objects as go

# Run with `streamlit run dashboard/app.py`; the script directory is on sys.path
from api_client import api_download, api_get, api_send


# Helper function to format risk levels consistently
def format_risk_level(level):
    """Format risk level tags for display"""
    level_mapping = {"low": "🟢 低", "medium": "🟡 中", "high": "🔴 高"}
    return level_mapping.get(level, level)


def format_money(value):
    return f"¥{value:,.2f}"


def sector_pie(sector_weights, title):
    """Pie chart of non-zero sector weights"""
    items = {k: v for k, v in sector_weights.items() if v > 0}
    fig = go.Figure(
        go.Pie(
            labels=list(items.keys()),
            values=list(items.values()),
            hole=0.4,
            hovertemplate="<b>%{label}</b><br>权重: %{percent}<extra></extra>",
        )
    )
    fig.update_layout(title=title, height=380, margin=dict(l=20, r=20, t=50, b=20))
    return fig


st.set_page_config(
    page_title="长盈智投", layout="wide", initial_sidebar_state="expanded"
)
st.title("📈 长盈智投 Grow Guard Investing")

nav_options = [
    ("🏠", "概览"),
    ("💼", "投资组合"),
    ("🛡️", "风险管理"),
    ("📝", "交易记录"),
    ("📄", "报告"),
]

st.sidebar.markdown("### 导航")

if "current_page" in st.session_state:
    page = st.session_state.current_page
else:
    page = "概览"

for icon, label in nav_options:
    if st.sidebar.button(f"{icon} {label}", key=f"nav_{label}"):
        st.session_state.current_page = label
        st.rerun()

health = api_get("/health", timeout=5)
if health and health.get("database") == "connected":
    st.sidebar.success("API 在线")
else:
    st.sidebar.error("API 离线")

portfolios = api_get("/api/portfolios") or []
portfolio_names = {p["name"]: p["id"] for p in portfolios}
selected_name = st.sidebar.selectbox("投资组合", list(portfolio_names.keys())) if portfolios else None
portfolio_id = portfolio_names.get(selected_name)


if page == "概览":
    st.header("🏠 总览")
    overview = api_get("/api/dashboard/overview")
    if overview:
        totals = overview["portfolios"]
        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric("总市值", format_money(totals["total_value"]))
        with col2:
            st.metric("总成本", format_money(totals["total_cost"]))
        with col3:
            st.metric("总盈亏", format_money(totals["total_pnl"]), f"{totals['total_pnl_percent']:.2f}%")
        with col4:
            counts = overview["positions"]
            st.metric("持仓", counts["total"], f"盈利{counts['profitable']} / 亏损{counts['losing']}")

        if overview["sectors"]:
            sectors_df = pd.DataFrame(overview["sectors"])
            fig = go.Figure(
                go.Bar(
                    x=sectors_df["name"],
                    y=sectors_df["value"],
                    marker_color=["#10b981" if pnl >= 0 else "#ef4444" for pnl in sectors_df["pnl"]],
                    hovertemplate="<b>%{x}</b><br>市值: ¥%{y:,.0f}<extra></extra>",
                )
            )
            fig.update_layout(title="赛道市值", height=380)
            st.plotly_chart(fig, use_container_width=True)

        st.subheader("最近交易")
        recent = overview["recent_transactions"]
        if recent:
            st.dataframe(pd.DataFrame(recent)[
                ["date", "stock_code", "stock_name", "type", "quantity", "price", "amount", "reason"]
            ], use_container_width=True)
        else:
            st.info("暂无交易记录")

elif page == "投资组合":
    st.header("💼 投资组合")

    with st.expander("➕ 新建投资组合"):
        name = st.text_input("名称")
        description = st.text_area("描述")
        if st.button("创建"):
            ok, message = api_send("POST", "/api/portfolios", {"name": name, "description": description})
            (st.success if ok else st.error)(message)

    if portfolio_id:
        detail = api_get(f"/api/portfolios/{portfolio_id}")
        if detail:
            col1, col2, col3 = st.columns(3)
            with col1:
                st.metric("总市值", format_money(detail["total_value"]))
            with col2:
                st.metric("总盈亏", format_money(detail["total_pnl"]), f"{detail['total_pnl_percent']:.2f}%")
            with col3:
                st.metric("最大回撤", f"{detail['max_drawdown'] * 100:.2f}%")

            if detail["positions"]:
                positions_df = pd.DataFrame(detail["positions"])
                positions_df["risk_level"] = positions_df["risk_level"].map(format_risk_level)
                positions_df["weight"] = (positions_df["weight"] * 100).round(1)
                st.dataframe(positions_df[[
                    "stock_code", "stock_name", "sector", "quantity", "avg_cost", "current_price",
                    "market_value", "unrealized_pnl", "unrealized_pnl_percent", "weight",
                    "stop_loss", "take_profit", "risk_level",
                ]], use_container_width=True)
                st.plotly_chart(sector_pie(detail["sector_weights"], "赛道分布"), use_container_width=True)
            else:
                st.info("该组合暂无持仓")

            csv_export = api_download(f"/api/portfolios/{portfolio_id}/export")
            if csv_export is not None:
                st.download_button(
                    "导出CSV",
                    data=csv_export,
                    file_name=f"portfolio-{portfolio_id}.csv",
                    mime="text/csv",
                )

        st.subheader("纪律检查")
        violations = api_get(f"/api/discipline/{portfolio_id}/check")
        if violations:
            labels = {
                "position_limit": "仓位超限",
                "sector_limit": "赛道超限",
                "stop_loss": "触发止损线",
                "take_profit": "触发止盈线",
            }
            found = False
            for key, label in labels.items():
                if violations[key]:
                    found = True
                    st.warning(f"{label}: {len(violations[key])}项")
                    st.dataframe(pd.DataFrame(violations[key]), use_container_width=True)
            if not found:
                st.success("未发现纪律违规")

elif page == "风险管理":
    st.header("🛡️ 风险管理")
    if not portfolio_id:
        st.info("请先创建投资组合")
    else:
        assessment = api_get(f"/api/risk/portfolios/{portfolio_id}/assessment")
        if assessment:
            col1, col2, col3 = st.columns(3)
            with col1:
                st.metric("加权风险评分", f"{assessment['weighted_risk_score']:.2f}")
            with col2:
                st.metric("总体风险等级", format_risk_level(assessment["overall_risk_level"]))
            with col3:
                dist = assessment["risk_distribution"]
                st.metric("高/中/低风险持仓", f"{dist['high']} / {dist['medium']} / {dist['low']}")

            if assessment["position_risks"]:
                risks_df = pd.DataFrame([
                    {
                        "股票": f"{r['stock_name']}({r['stock_code']})",
                        "赛道": r["sector"],
                        "价格风险": r["price_risk"]["score"],
                        "集中度风险": r["concentration_risk"]["score"],
                        "波动性风险": r["volatility_risk"]["score"],
                        "总分": r["total_risk_score"],
                        "等级": format_risk_level(r["risk_level"]),
                        "建议": "；".join(r["recommendations"]),
                    }
                    for r in assessment["position_risks"]
                ])
                st.dataframe(risks_df, use_container_width=True)

            st.subheader("风险因素与建议")
            for factor in assessment["risk_factors"]:
                st.warning(factor)
            for recommendation in assessment["recommendations"]:
                st.info(recommendation)

        alerts = api_get(f"/api/risk/portfolios/{portfolio_id}/alerts")
        if alerts:
            st.subheader("止损止盈预警")
            for alert in alerts["stop_loss_alerts"]:
                st.error(f"🔻 {alert['stock_name']} 现价{alert['current_price']:.2f} ≤ 止损价{alert['stop_loss_price']:.2f}")
            for alert in alerts["take_profit_alerts"]:
                st.success(f"🔺 {alert['stock_name']} 现价{alert['current_price']:.2f} ≥ 止盈价{alert['take_profit_price']:.2f}")
            if not alerts["stop_loss_alerts"] and not alerts["take_profit_alerts"]:
                st.info("暂无触发")

        suggestions = api_get(f"/api/risk/portfolios/{portfolio_id}/rebalance")
        if suggestions:
            st.subheader("调仓建议")
            for suggestion in suggestions:
                st.warning(suggestion["reason"])

elif page == "交易记录":
    st.header("📝 交易记录")
    if portfolio_id:
        with st.expander("➕ 记录交易"):
            col1, col2 = st.columns(2)
            with col1:
                stock_code = st.text_input("股票代码")
                stock_name = st.text_input("股票名称")
                trade_type = st.selectbox("类型", ["BUY", "SELL"])
                sector = st.selectbox("赛道（新建持仓时需要）", ["车与智能驾驶", "AI算力", "军工", "高端制造", "机器人", "新能源"])
            with col2:
                quantity = st.number_input("数量", min_value=100, step=100)
                price = st.number_input("价格", min_value=0.01, value=10.0)
                commission = st.number_input("手续费", min_value=0.0)
                reason = st.text_input("原因")
            if st.button("提交"):
                ok, message = api_send("POST", "/api/transactions", {
                    "portfolio_id": portfolio_id,
                    "stock_code": stock_code,
                    "stock_name": stock_name,
                    "type": trade_type,
                    "quantity": int(quantity),
                    "price": price,
                    "commission": commission,
                    "reason": reason,
                    "sector": sector,
                })
                (st.success if ok else st.error)(message)

        transactions = api_get("/api/transactions", params={"portfolio_id": portfolio_id, "limit": 200})
        if transactions:
            st.dataframe(pd.DataFrame(transactions), use_container_width=True)
        else:
            st.info("暂无交易记录")

elif page == "报告":
    st.header("📄 报告")
    if portfolio_id:
        report_type = st.selectbox("报告类型", ["MORNING", "CLOSING", "ALERT"])
        if st.button("生成报告"):
            ok, message = api_send("POST", "/api/reports", {"portfolio_id": portfolio_id, "type": report_type})
            (st.success if ok else st.error)(message)

        reports = api_get("/api/reports", params={"portfolio_id": portfolio_id})
        for report in reports or []:
            with st.expander(f"{report['title']}"):
                st.caption(report["summary"])
                st.text(report["content"])

        st.subheader("风险报告")
        risk_report = api_download(f"/api/risk/portfolios/{portfolio_id}/report")
        if risk_report is not None:
            st.text(risk_report.decode("utf-8"))
