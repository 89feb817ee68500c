"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. Users can view and export their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (we handle this with careful ordering)
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing business logic.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import GoogleSheetsSettings, get_settings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.models.budget import (
    Budget,
    CategoryName,
    Expense,
    UserSettings,
    default_budgets,
)
from src.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    SettingsStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


EXPENSE_COLUMNS = [
    "id",
    "expense_date",
    "amount",
    "category",
    "description",
    "created_at",
]

BUDGET_COLUMNS = [
    "category",
    "amount",
    "updated_at",
]

SETTINGS_COLUMNS = [
    "key",
    "value",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Handle missing columns gracefully."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS, rows=5000
        )

    def get_budgets_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.budgets_sheet_name, BUDGET_COLUMNS, rows=50
        )

    def get_settings_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.settings_sheet_name, SETTINGS_COLUMNS, rows=20
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of expense storage.

    One expense per row, keyed by the ID in column A.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _expense_to_row(expense: Expense) -> list:
        return [
            str(expense.id),
            expense.expense_date.isoformat(),
            str(expense.amount),
            expense.category.value,
            expense.description or "",
            expense.created_at.isoformat(),
        ]

    @staticmethod
    def _row_to_expense(row: list) -> Expense:
        return Expense(
            id=UUID(_safe_get(row, 0)),
            expense_date=date.fromisoformat(_safe_get(row, 1)),
            amount=Decimal(_safe_get(row, 2)),
            category=CategoryName(_safe_get(row, 3)),
            description=_safe_get(row, 4) or None,
            created_at=datetime.fromisoformat(_safe_get(row, 5)),
        )

    @classmethod
    def _parse_row(cls, row: list) -> Optional[Expense]:
        """Row as an Expense, or None (logged) when a cell won't parse."""
        try:
            return cls._row_to_expense(row)
        except (ValueError, ArithmeticError, IndexError) as e:
            # Decimal raises InvalidOperation, an ArithmeticError
            logger.warning("malformed_expense_row", row=row, error=str(e) or type(e).__name__)
            return None

    def _read_expenses(self) -> list[Expense]:
        sheet = self._client.get_expenses_sheet()
        expenses = []
        for row in sheet.get_all_values()[1:]:  # Skip header
            if not row or not row[0]:
                continue
            expense = self._parse_row(row)
            if expense is not None:
                expenses.append(expense)
        return expenses

    @retry(
        retry=retry_if_not_exception_type(DuplicateError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_expense(self, expense: Expense) -> bool:
        if await self.get_expense_by_id(expense.id):
            raise DuplicateError(f"Expense already exists: {expense.id}")
        try:
            sheet = self._client.get_expenses_sheet()
            sheet.append_row(self._expense_to_row(expense), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    async def get_expense_by_id(self, expense_id: UUID) -> Optional[Expense]:
        try:
            sheet = self._client.get_expenses_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == str(expense_id):
                    return self._parse_row(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get expense: {e}")

    async def update_expense(self, expense: Expense) -> bool:
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()

            # Row 1 is the header
            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(expense.id):
                    sheet.update(
                        range_name=f"A{idx}",
                        values=[self._expense_to_row(expense)],
                        value_input_option="RAW",
                    )
                    return True

            raise NotFoundError(f"Expense not found: {expense.id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update expense: {e}")

    async def delete_expense(self, expense_id: UUID) -> bool:
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(expense_id):
                    sheet.delete_rows(idx)
                    return True

            return False
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")

    async def list_expenses(
        self,
        category: Optional[CategoryName] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 1000,
        offset: int = 0,
    ) -> list[Expense]:
        try:
            expenses = self._read_expenses()
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")

        filtered = []
        for expense in expenses:
            if category and expense.category != category:
                continue
            if date_from and expense.expense_date < date_from:
                continue
            if date_to and expense.expense_date > date_to:
                continue
            filtered.append(expense)

        # Newest first
        filtered.sort(key=lambda e: (e.expense_date, e.created_at), reverse=True)
        return filtered[offset:offset + limit]

    async def expense_exists(
        self,
        category: CategoryName,
        amount: Decimal,
        expense_date: date,
        description: Optional[str] = None,
        exclude_id: Optional[UUID] = None,
    ) -> bool:
        candidates = await self.list_expenses(
            category=category,
            date_from=expense_date,
            date_to=expense_date,
        )
        wanted = (description or "").strip().lower()
        return any(
            expense.id != exclude_id
            and expense.amount == amount
            and (expense.description or "").strip().lower() == wanted
            for expense in candidates
        )


class GoogleSheetsBudgetStorage(BudgetStorageInterface):
    """One row per category; the category name is the key."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _read_budgets(self) -> dict[CategoryName, Budget]:
        sheet = self._client.get_budgets_sheet()
        budgets = {}
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                budget = Budget(
                    category=CategoryName(_safe_get(row, 0)),
                    amount=Decimal(_safe_get(row, 1, "0")),
                )
            except (ValueError, ArithmeticError) as e:
                logger.warning("malformed_budget_row", row=row, error=str(e))
                continue
            budgets[budget.category] = budget
        return budgets

    async def list_budgets(self) -> list[Budget]:
        try:
            stored = self._read_budgets()
        except Exception as e:
            raise StorageError(f"Failed to list budgets: {e}")
        return [stored.get(default.category, default) for default in default_budgets()]

    @retry(
        retry=retry_if_not_exception_type(ValidationError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def set_budget(self, category: CategoryName, amount: Decimal) -> Budget:
        budget = Budget(category=category, amount=amount)
        row = [category.value, str(budget.amount), datetime.utcnow().isoformat()]
        try:
            sheet = self._client.get_budgets_sheet()
            for idx, existing in enumerate(sheet.get_all_values()[1:], start=2):
                if existing and existing[0] == category.value:
                    sheet.update(range_name=f"A{idx}", values=[row], value_input_option="RAW")
                    return budget
            sheet.append_row(row, value_input_option="RAW")
            return budget
        except Exception as e:
            raise StorageError(f"Failed to save budget: {e}")


class GoogleSheetsSettingsStorage(SettingsStorageInterface):
    """Settings stored as key/value rows."""

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        defaults: Optional[UserSettings] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._defaults = defaults or UserSettings()

    async def get_settings(self) -> UserSettings:
        try:
            sheet = self._client.get_settings_sheet()
            values = {
                row[0]: _safe_get(row, 1)
                for row in sheet.get_all_values()[1:]
                if row and row[0]
            }
        except Exception as e:
            raise StorageError(f"Failed to read settings: {e}")

        if not values:
            # First run: persist defaults so the sheet shows them
            return await self.save_settings(self._defaults)

        merged = self._defaults.model_dump()
        merged.update({k: v for k, v in values.items() if k in merged and v != ""})
        return UserSettings(**merged)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_settings(self, settings: UserSettings) -> UserSettings:
        rows = [[key, str(value)] for key, value in settings.model_dump().items()]
        try:
            sheet = self._client.get_settings_sheet()
            sheet.batch_clear([f"A2:B{len(rows) + 20}"])
            sheet.update(range_name="A2", values=rows, value_input_option="RAW")
            return settings
        except Exception as e:
            raise StorageError(f"Failed to save settings: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _row_to_event(row: list) -> AuditEvent:
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=_safe_get(row, 5) or None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, IndexError):
                continue
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning("audit_event_write_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._read_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
