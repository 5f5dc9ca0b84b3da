from typing import Annotated
import csv
from io import StringIO

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

import analytics
import budget
import categories
import dashboard
import expenses
import savings
from auth import get_current_user
from database import get_db, Category, Expense, User
from schemas import (
    BudgetStatus,
    BudgetSummary,
    BudgetUpdate,
    CategoryCreate,
    CategoryDeletionCheck,
    CategoryOut,
    CategoryReorder,
    CategoryUpdate,
    ContributionCreate,
    ContributionOut,
    DailyExpense,
    ExpenseCreate,
    ExpenseFilters,
    ExpenseOut,
    ExpenseUpdate,
    PaginatedExpenses,
    SavingsGoalCreate,
    SavingsGoalOut,
    SavingsGoalUpdate,
)

router = APIRouter()


# categories


@router.get("/categories", response_model=list[CategoryOut])
def list_categories(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return categories.list_categories(db, current_user.id)


@router.post("/categories", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    data: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return categories.create_category(db, current_user.id, data)


@router.put("/categories/reorder")
def reorder_categories(
    data: CategoryReorder,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    updated = categories.reorder_categories(db, current_user.id, data.categories)
    return {"message": "Categories reordered successfully", "updated": updated}


@router.get("/categories/{category_id}", response_model=CategoryOut)
def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return categories.get_category(db, current_user.id, category_id)


@router.patch("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return categories.update_category(db, current_user.id, category_id, data)


@router.get("/categories/{category_id}/deletion-check", response_model=CategoryDeletionCheck)
def check_category_deletion(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return categories.check_category_deletion(db, current_user.id, category_id)


@router.delete("/categories/{category_id}")
def delete_category(
    category_id: int,
    confirm: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = categories.delete_category(db, current_user.id, category_id, confirmed=confirm)
    return {"message": "Category deleted successfully", **result}


# budgets


@router.get("/budgets/summary", response_model=BudgetSummary)
def get_budget_summary(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return budget.budget_summary(db, current_user.id)


@router.get("/budgets/alerts", response_model=list[BudgetStatus])
def get_budget_alerts(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return budget.budget_alerts(db, current_user.id)


@router.get("/budgets/categories/{category_id}", response_model=BudgetStatus)
def get_category_budget(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return budget.category_budget_status(db, current_user.id, category_id)


@router.put("/budgets/categories/{category_id}", response_model=CategoryOut)
def set_category_budget(
    category_id: int,
    data: BudgetUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return budget.update_category_budget(db, current_user.id, category_id, data.monthly_budget)


# expenses


@router.post("/expenses", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED)
def create_expense(
    data: ExpenseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return expenses.create_expense(db, current_user.id, data)


@router.get("/expenses", response_model=PaginatedExpenses)
def list_expenses(
    filters: Annotated[ExpenseFilters, Query()],
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return analytics.paginated_expenses(db, current_user.id, filters)


@router.get("/expenses/stats")
def get_expense_stats(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return analytics.expense_stats(db, current_user.id)


@router.get("/expenses/daily", response_model=list[DailyExpense])
def get_daily_expenses(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return analytics.daily_expenses(db, current_user.id, days)


@router.get("/expenses/{expense_id}", response_model=ExpenseOut)
def get_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return expenses.get_expense(db, current_user.id, expense_id)


@router.patch("/expenses/{expense_id}", response_model=ExpenseOut)
def update_expense(
    expense_id: int,
    data: ExpenseUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return expenses.update_expense(db, current_user.id, expense_id, data)


@router.delete("/expenses/{expense_id}")
def delete_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expenses.delete_expense(db, current_user.id, expense_id)
    return {"message": "Expense deleted successfully"}


@router.get("/export-report")
def export_financial_report(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Exports the user's expenses as CSV:
    - every expense, newest first
    - category-wise totals
    """
    rows = (
        db.query(Expense)
        .options(joinedload(Expense.category))
        .filter(Expense.user_id == current_user.id)
        .order_by(Expense.date.desc(), Expense.id.desc())
        .all()
    )

    csv_data = StringIO()
    writer = csv.writer(csv_data)
    writer.writerow(["Date", "Category", "Amount", "Payment Method", "Description", "Tags"])
    for e in rows:
        writer.writerow(
            [
                e.date.strftime("%Y-%m-%d %H:%M"),
                e.category.name,
                e.amount,
                e.payment_method,
                e.description or "",
                ";".join(e.tags),
            ]
        )

    writer.writerow([])
    writer.writerow(["Category", "Total Spending"])
    category_totals = (
        db.query(Category.name, func.sum(Expense.amount).label("total"))
        .join(Expense, Expense.category_id == Category.id)
        .filter(Expense.user_id == current_user.id)
        .group_by(Category.id)
        .order_by(Category.name)
        .all()
    )
    for name, total in category_totals:
        writer.writerow([name, total])

    csv_data.seek(0)
    return StreamingResponse(
        iter([csv_data.getvalue()]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename=expenses_{current_user.id}.csv"
        },
    )


# dashboard


@router.get("/dashboard")
def get_dashboard(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return dashboard.dashboard_data(db, current_user.id)


@router.get("/dashboard/financial-summary")
def get_financial_summary(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return dashboard.financial_summary(db, current_user.id)


# savings goals


@router.get("/savings-goals", response_model=list[SavingsGoalOut])
def list_savings_goals(
    include_completed: bool = True,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    goals = savings.list_goals(db, current_user.id, include_completed)
    return [savings.goal_view(g) for g in goals]


@router.post("/savings-goals", response_model=SavingsGoalOut, status_code=status.HTTP_201_CREATED)
def create_savings_goal(
    data: SavingsGoalCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return savings.goal_view(savings.create_goal(db, current_user.id, data))


@router.get("/savings-goals/stats")
def get_savings_stats(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return savings.savings_stats(db, current_user.id)


@router.get("/savings-goals/{goal_id}", response_model=SavingsGoalOut)
def get_savings_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return savings.goal_view(savings.get_goal(db, current_user.id, goal_id))


@router.patch("/savings-goals/{goal_id}", response_model=SavingsGoalOut)
def update_savings_goal(
    goal_id: int,
    data: SavingsGoalUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return savings.goal_view(savings.update_goal(db, current_user.id, goal_id, data))


@router.delete("/savings-goals/{goal_id}")
def delete_savings_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    savings.delete_goal(db, current_user.id, goal_id)
    return {"message": "Savings goal deleted successfully"}


@router.post("/savings-goals/{goal_id}/contributions", response_model=SavingsGoalOut)
def add_contribution(
    goal_id: int,
    data: ContributionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return savings.goal_view(savings.add_contribution(db, current_user.id, goal_id, data))


@router.get("/savings-goals/{goal_id}/contributions", response_model=list[ContributionOut])
def list_contributions(
    goal_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return savings.list_contributions(db, current_user.id, goal_id)
