"""
Streamlit Frontend for SpendWise

This is the user interface people use to track spending and get
budget advice.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in simple language
3. Visual feedback for all operations
4. No hidden actions

The UI never talks to storage or the model directly:
- Expense, budget and settings changes go through ExpenseFlow
- Numbers come from ReportService
- Advice comes from AdvisoryFlow
"""

import asyncio
import html
from datetime import date
from decimal import Decimal

import streamlit as st
from pydantic import ValidationError

from src.agents import ModelUnavailableError, RequestValidationError
from src.audit import create_correlation_id
from src.models.budget import EXPENSE_CATEGORIES
from src.orchestrator import AdvisoryFlow, ExpenseFlow, create_app_components
from src.reports import ReportService, format_currency
from src.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="SpendWise",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .error-box {
        padding: 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components(use_storage=True)


def main():
    """Main application entry point."""
    expense_flow, advisory_flow, report_service = get_components()

    # Sidebar navigation
    st.sidebar.title("💰 SpendWise")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "🏠 Dashboard",
            "🧾 Expenses",
            "🎯 Budgets",
            "📊 Reports",
            "🤖 AI Budget Tool",
            "⚙️ Settings",
        ],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Set your monthly income in Settings
        2. Record your expenses
        3. Set a budget per category
        4. Ask the AI for budget suggestions
        """
    )

    currency = run_async(expense_flow.get_settings()).currency

    # Route to appropriate page
    if page == "🏠 Dashboard":
        render_dashboard_page(report_service, currency)
    elif page == "🧾 Expenses":
        render_expenses_page(expense_flow, currency)
    elif page == "🎯 Budgets":
        render_budgets_page(expense_flow, report_service, currency)
    elif page == "📊 Reports":
        render_reports_page(report_service, currency)
    elif page == "🤖 AI Budget Tool":
        render_ai_budget_page(advisory_flow, report_service, currency)
    elif page == "⚙️ Settings":
        render_settings_page(expense_flow)


def render_dashboard_page(report_service: ReportService, currency: str):
    """Render the dashboard page."""
    st.title("🏠 Dashboard")

    summary = run_async(report_service.dashboard())

    col1, col2, col3 = st.columns(3)
    col1.metric("Monthly Income", format_currency(summary.monthly_income, currency))
    col2.metric("Total Expenses", format_currency(summary.total_spent, currency))
    col3.metric("Remaining", format_currency(summary.remaining, currency))

    if summary.remaining < 0:
        st.markdown("""
        <div class="warning-box">
            <p>You have spent more than your monthly income.</p>
        </div>
        """, unsafe_allow_html=True)

    st.markdown("### Budget Overview")
    active = [b for b in summary.budgets if b.budget > 0]
    if not active:
        st.info("No budgets set yet. Use the 'Budgets' page to set some.")
    for progress in active:
        st.markdown(
            f"**{progress.category.value}**: "
            f"{format_currency(progress.spent, currency)} of "
            f"{format_currency(progress.budget, currency)}"
        )
        st.progress(min(progress.percent_used / 100, 1.0))

    st.markdown("### Recent Expenses")
    if not summary.recent_expenses:
        st.info("📋 Your expenses will appear here once you add them.")
    else:
        st.dataframe(
            [
                {
                    "Date": e.expense_date.isoformat(),
                    "Category": e.category.value,
                    "Description": e.description or "",
                    "Amount": format_currency(e.amount, currency),
                }
                for e in summary.recent_expenses
            ],
            use_container_width=True,
        )


def render_expenses_page(expense_flow: ExpenseFlow, currency: str):
    """Render the expenses page."""
    st.title("🧾 Expenses")
    st.markdown("Record what you spend.")

    with st.form("add_expense", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            expense_date = st.date_input("Date", value=date.today())
            amount = st.number_input("Amount", min_value=0.0, step=1.0, format="%.2f")
        with col2:
            category = st.selectbox(
                "Category",
                options=EXPENSE_CATEGORIES,
                format_func=lambda c: c.value,
            )
            description = st.text_input("Description (optional)", max_chars=200)
        submitted = st.form_submit_button("➕ Add Expense", type="primary")

    if submitted:
        try:
            saved, result, message = run_async(
                expense_flow.add_expense(
                    expense_date=expense_date,
                    amount=Decimal(str(amount)).quantize(Decimal("0.01")),
                    category=category,
                    description=description,
                    correlation_id=create_correlation_id(),
                )
            )
        except ValidationError:
            st.error("Please enter an amount greater than zero.")
        except StorageError as e:
            st.error(f"Could not save the expense: {e}")
        else:
            if saved:
                st.success(f"✅ Saved {format_currency(saved.amount, currency)} for {saved.category.value}.")
                if result.warnings:
                    st.warning(message)
            else:
                st.error(message)

    st.markdown("---")

    category_filter = st.selectbox(
        "Filter by Category",
        options=[None] + EXPENSE_CATEGORIES,
        format_func=lambda x: "All Categories" if x is None else x.value,
    )

    expenses = run_async(expense_flow.list_expenses(category=category_filter))

    if not expenses:
        st.info("📋 No expenses recorded yet.")
        return

    for expense in expenses:
        col1, col2, col3, col4, col5 = st.columns([2, 2, 4, 2, 1])
        col1.write(expense.expense_date.isoformat())
        col2.write(expense.category.value)
        col3.write(expense.description or "")
        col4.write(format_currency(expense.amount, currency))
        if col5.button("🗑️", key=f"delete_{expense.id}"):
            run_async(expense_flow.delete_expense(expense.id))
            st.rerun()


def render_budgets_page(expense_flow: ExpenseFlow, report_service: ReportService, currency: str):
    """Render the budgets page."""
    st.title("🎯 Budgets")
    st.markdown("Set a monthly spending goal for each category. 0 means no budget.")

    budgets = {b.category: b for b in run_async(expense_flow.list_budgets())}

    with st.form("budgets"):
        amounts = {}
        for category in EXPENSE_CATEGORIES:
            amounts[category] = st.number_input(
                category.value,
                min_value=0.0,
                step=10.0,
                format="%.2f",
                value=float(budgets[category].amount) if category in budgets else 0.0,
            )
        submitted = st.form_submit_button("💾 Save Budgets", type="primary")

    if submitted:
        correlation_id = create_correlation_id()
        try:
            for category, value in amounts.items():
                new_amount = Decimal(str(value)).quantize(Decimal("0.01"))
                current = budgets.get(category)
                if current is None or current.amount != new_amount:
                    run_async(expense_flow.set_budget(category, new_amount, correlation_id))
        except StorageError as e:
            st.error(f"Could not save budgets: {e}")
        else:
            st.success("✅ Budgets saved.")

    st.markdown("### Budget vs Actual")
    progress = run_async(report_service.budget_vs_actual())
    if not progress:
        st.info("Set a budget above to track it here.")
    for item in progress:
        label = "🔴 Over budget" if item.is_over_budget else "🟢 On track"
        st.markdown(
            f"**{item.category.value}** {label}: "
            f"{format_currency(item.spent, currency)} spent, "
            f"{format_currency(item.remaining, currency)} left"
        )
        st.progress(min(item.percent_used / 100, 1.0))


def render_reports_page(report_service: ReportService, currency: str):
    """Render the reports page."""
    st.title("📊 Reports")

    date_range = st.date_input(
        "Date Range",
        value=[],
        help="Leave empty to include everything",
    )
    date_from, date_to = (date_range[0], date_range[1]) if len(date_range) == 2 else (None, None)

    breakdown = run_async(report_service.spending_breakdown(date_from, date_to))

    st.markdown("### Spending by Category")
    if not breakdown:
        st.info("No expense data for this period.")
    else:
        total = sum(point.value for point in breakdown)
        st.dataframe(
            [
                {
                    "Category": point.name,
                    "Spent": format_currency(point.value, currency),
                    "Share": f"{point.value / total:.0%}",
                }
                for point in breakdown
            ],
            use_container_width=True,
        )

    st.markdown("### Budget vs Actual")
    progress = run_async(report_service.budget_vs_actual(date_from, date_to))
    if not progress:
        st.info("No budgets set.")
    else:
        st.dataframe(
            [
                {
                    "Category": p.category.value,
                    "Budget": format_currency(p.budget, currency),
                    "Spent": format_currency(p.spent, currency),
                    "Remaining": format_currency(p.remaining, currency),
                    "Used": f"{p.percent_used:.0f}%",
                }
                for p in progress
            ],
            use_container_width=True,
        )

    st.markdown("### Monthly Totals")
    months = run_async(report_service.monthly_totals())
    if months:
        st.dataframe(
            [{"Month": month, "Total": format_currency(total, currency)} for month, total in months.items()],
            use_container_width=True,
        )


def render_ai_budget_page(advisory_flow: AdvisoryFlow, report_service: ReportService, currency: str):
    """Render the AI budget suggestion page."""
    st.title("🤖 AI Budget Tool")

    summary = run_async(report_service.dashboard())
    active_categories = sum(1 for p in summary.budgets if p.spent > 0)

    st.markdown(
        "Get personalized budget adjustment suggestions based on your income, "
        "spending and goals. Keep your expenses and budgets up to date for the best advice."
    )
    st.markdown(
        f"The AI will look at your income (**{format_currency(summary.monthly_income, currency)}**) "
        f"and your expenses (**{format_currency(summary.total_spent, currency)}** "
        f"across {active_categories} categories)."
    )

    if summary.monthly_income <= 0:
        st.warning("Please set your monthly income in the Settings page to enable AI suggestions.")

    financial_context = st.text_area(
        "Financial Goals/Context (Optional)",
        placeholder="e.g., Saving for a house deposit in 2 years",
        max_chars=2000,
    )

    if st.button("✨ Get Suggestions", type="primary", disabled=summary.monthly_income <= 0):
        with st.spinner("Thinking about your budget..."):
            try:
                result = run_async(
                    advisory_flow.get_suggestions(
                        financial_context=financial_context,
                        correlation_id=create_correlation_id(),
                    )
                )
            except RequestValidationError as e:
                st.error(str(e))
                return
            except ModelUnavailableError:
                st.markdown("""
                <div class="error-box">
                    <h4>AI service unavailable</h4>
                    <p>Could not fetch suggestions from AI. Please try again later.</p>
                </div>
                """, unsafe_allow_html=True)
                return

        if result.response.is_empty:
            st.markdown("""
            <div class="info-box">
                <p>The AI couldn't find specific suggestions for your current data.
                Try adjusting your expenses or budget goals.</p>
            </div>
            """, unsafe_allow_html=True)
            return

        for category, suggestion in result.response.suggestions.items():
            st.markdown(f"""
            <div class="success-box">
                <h4>{html.escape(category)}</h4>
                <p>{html.escape(suggestion)}</p>
            </div>
            """, unsafe_allow_html=True)


def render_settings_page(expense_flow: ExpenseFlow):
    """Render the settings page."""
    st.title("⚙️ Settings")

    from src.config import get_settings, validate_all_settings

    app_settings = get_settings().app
    current = run_async(expense_flow.get_settings())

    languages = app_settings.supported_languages_list
    currencies = app_settings.supported_currencies_list
    if current.language not in languages:
        languages = [current.language] + languages
    if current.currency not in currencies:
        currencies = [current.currency] + currencies

    with st.form("settings"):
        monthly_income = st.number_input(
            "Monthly Income",
            min_value=0.0,
            step=100.0,
            format="%.2f",
            value=float(current.monthly_income),
        )
        currency = st.selectbox("Currency", options=currencies, index=currencies.index(current.currency))
        language = st.selectbox(
            "Language (also used for AI suggestions)",
            options=languages,
            index=languages.index(current.language),
        )
        submitted = st.form_submit_button("💾 Save Settings", type="primary")

    if submitted:
        try:
            run_async(
                expense_flow.update_settings(
                    monthly_income=Decimal(str(monthly_income)).quantize(Decimal("0.01")),
                    currency=currency,
                    language=language,
                    correlation_id=create_correlation_id(),
                )
            )
        except StorageError as e:
            st.error(f"Could not save settings: {e}")
        else:
            st.success("✅ Settings saved.")
            st.rerun()

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Gemini (AI)", "gemini"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if not status.get("google_sheets", False):
        st.info("Without Google Sheets, data is kept in memory and lost when the app restarts.")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
