from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from app.models import Cleaner, SalaryLog
from app.services.work_log import WorkLogParseError, coerce_number, parse_work_log

logger = logging.getLogger("app.financials")

UNKNOWN_LABEL = "Unknown"


@dataclass(frozen=True, slots=True)
class FinancialTotals:
    total_payroll: float
    total_gross: float
    total_deductions: float
    average_payment: float
    payment_count: int
    personnel_cost: float


@dataclass(frozen=True, slots=True)
class MonthlyTotal:
    month: str
    payroll: float
    deductions: float


@dataclass(frozen=True, slots=True)
class BranchExpense:
    name: str
    value: float


@dataclass(frozen=True, slots=True)
class BranchMonthlyExpense:
    branch: str
    month: str
    amount: float


@dataclass(frozen=True, slots=True)
class BranchProfit:
    name: str
    revenue: float
    expense: float
    profit: float
    profit_margin: float


@dataclass(frozen=True, slots=True)
class StaffPaymentHistory:
    name: str
    role: str | None
    total_paid: float
    payment_count: int
    latest_payment: SalaryLog | None
    payments: list[SalaryLog]


@dataclass(frozen=True, slots=True)
class RoleTotal:
    name: str
    value: float


@dataclass(slots=True)
class BranchExpenseBreakdown:
    totals: list[BranchExpense] = field(default_factory=list)
    monthly: list[BranchMonthlyExpense] = field(default_factory=list)
    skipped_payment_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class FinancialOverview:
    totals: FinancialTotals
    monthly: list[MonthlyTotal]
    branch_expenses: list[BranchExpense]
    branch_monthly_expenses: list[BranchMonthlyExpense]
    branch_profits: list[BranchProfit]
    staff_history: list[StaffPaymentHistory]
    role_distribution: list[RoleTotal]
    skipped_work_log_payment_ids: list[str]


def _month_label(payment: SalaryLog) -> str:
    if payment.month is None:
        return UNKNOWN_LABEL
    return getattr(payment.month, "value", payment.month) or UNKNOWN_LABEL


def _role_name(role: Any) -> str | None:
    if role is None:
        return None
    return getattr(role, "value", role)


def compute_personnel_cost(payments: Sequence[SalaryLog], roster: Iterable[Cleaner]) -> float:
    """Net pay of payments whose staff_name matches a roster member.

    Each roster entry counts its matches, so duplicate names on the roster
    count the same payment once per entry.
    """
    total = 0.0
    for cleaner in roster:
        total += sum(coerce_number(p.net_pay) for p in payments if p.staff_name == cleaner.name)
    return total


def compute_totals(payments: Sequence[SalaryLog], roster: Iterable[Cleaner]) -> FinancialTotals:
    total_payroll = sum((coerce_number(p.net_pay) for p in payments), 0.0)
    total_gross = sum((coerce_number(p.gross_total) for p in payments), 0.0)
    total_deductions = sum((coerce_number(p.deductions) for p in payments), 0.0)
    count = len(payments)
    return FinancialTotals(
        total_payroll=total_payroll,
        total_gross=total_gross,
        total_deductions=total_deductions,
        average_payment=total_payroll / count if count else 0.0,
        payment_count=count,
        personnel_cost=compute_personnel_cost(payments, roster),
    )


def compute_monthly_totals(payments: Iterable[SalaryLog]) -> list[MonthlyTotal]:
    # dicts keep insertion order, which gives first-seen month order.
    buckets: dict[str, list[float]] = {}
    for payment in payments:
        bucket = buckets.setdefault(_month_label(payment), [0.0, 0.0])
        bucket[0] += coerce_number(payment.net_pay)
        bucket[1] += coerce_number(payment.deductions)
    return [
        MonthlyTotal(month=month, payroll=payroll, deductions=deductions)
        for month, (payroll, deductions) in buckets.items()
    ]


def compute_branch_expenses(payments: Iterable[SalaryLog]) -> BranchExpenseBreakdown:
    """Flatten every stored work-log row and total it by branch and by (branch, month).

    Payments whose work_log cannot be decoded are skipped here and reported
    back; the global totals still include them.
    """
    totals: dict[str, float] = {}
    monthly: dict[tuple[str, str], float] = {}
    skipped: list[str] = []
    for payment in payments:
        try:
            entries = parse_work_log(payment.work_log)
        except WorkLogParseError as exc:
            logger.warning(
                "work_log_parse_failed",
                extra={"payment_id": payment.payment_id, "record_id": payment.id, "reason": str(exc)},
            )
            skipped.append(payment.payment_id)
            continue
        month = _month_label(payment)
        for entry in entries:
            branch = entry.branch or UNKNOWN_LABEL
            totals[branch] = totals.get(branch, 0.0) + entry.total
            key = (branch, month)
            monthly[key] = monthly.get(key, 0.0) + entry.total
    return BranchExpenseBreakdown(
        totals=[BranchExpense(name=name, value=value) for name, value in totals.items()],
        monthly=[
            BranchMonthlyExpense(branch=branch, month=month, amount=amount)
            for (branch, month), amount in monthly.items()
        ],
        skipped_payment_ids=skipped,
    )


def profit_margin(revenue: float, profit: float) -> float:
    if revenue <= 0:
        return 0.0
    return round(profit / revenue * 100, 1)


def compute_branch_profits(
    expenses: Iterable[BranchExpense],
    revenues: Mapping[str, Any],
) -> list[BranchProfit]:
    profits: list[BranchProfit] = []
    for expense in expenses:
        revenue = coerce_number(revenues.get(expense.name))
        profit = revenue - expense.value
        profits.append(
            BranchProfit(
                name=expense.name,
                revenue=revenue,
                expense=expense.value,
                profit=profit,
                profit_margin=profit_margin(revenue, profit),
            )
        )
    return profits


def _payment_sort_key(payment: SalaryLog) -> datetime:
    if payment.date is not None:
        return datetime.combine(payment.date, datetime.min.time())
    if payment.created_date is not None:
        return payment.created_date.replace(tzinfo=None)
    return datetime.min


def payments_for_staff(payments: Iterable[SalaryLog], staff_name: str) -> list[SalaryLog]:
    """Payments for one name, newest first (date, falling back to created_date)."""
    matched = [payment for payment in payments if payment.staff_name == staff_name]
    matched.sort(key=_payment_sort_key, reverse=True)
    return matched


def compute_staff_history(
    payments: Sequence[SalaryLog],
    roster: Iterable[Cleaner],
) -> list[StaffPaymentHistory]:
    history: list[StaffPaymentHistory] = []
    for cleaner in roster:
        matched = payments_for_staff(payments, cleaner.name)
        history.append(
            StaffPaymentHistory(
                name=cleaner.name,
                role=_role_name(cleaner.role),
                total_paid=sum((coerce_number(p.net_pay) for p in matched), 0.0),
                payment_count=len(matched),
                latest_payment=matched[0] if matched else None,
                payments=matched,
            )
        )
    history.sort(key=lambda item: item.total_paid, reverse=True)
    return history


def compute_role_distribution(payments: Iterable[SalaryLog]) -> list[RoleTotal]:
    roles: dict[str, float] = {}
    for payment in payments:
        role = payment.role or UNKNOWN_LABEL
        roles[role] = roles.get(role, 0.0) + coerce_number(payment.net_pay)
    return [RoleTotal(name=name, value=value) for name, value in roles.items()]


def build_financial_overview(
    payments: Sequence[SalaryLog],
    roster: Sequence[Cleaner],
    revenues: Mapping[str, Any],
) -> FinancialOverview:
    expenses = compute_branch_expenses(payments)
    return FinancialOverview(
        totals=compute_totals(payments, roster),
        monthly=compute_monthly_totals(payments),
        branch_expenses=expenses.totals,
        branch_monthly_expenses=expenses.monthly,
        branch_profits=compute_branch_profits(expenses.totals, revenues),
        staff_history=compute_staff_history(payments, roster),
        role_distribution=compute_role_distribution(payments),
        skipped_work_log_payment_ids=expenses.skipped_payment_ids,
    )


def payment_date_label(value: date | None) -> str:
    return value.isoformat() if value is not None else ""
