# schemas.py
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, confloat, constr, field_validator, model_validator

HexColor = constr(pattern=r"^#[0-9A-Fa-f]{6}$")
PaymentMethod = Literal["cash", "card", "mobile_banking", "bank_transfer", "other"]
RecurringInterval = Literal["daily", "weekly", "monthly", "yearly"]
TaskPriority = Literal["urgent", "high", "medium", "low"]
TaskStatus = Literal["todo", "in_progress", "completed", "cancelled"]
GoalPriority = Literal["high", "medium", "low"]


# --- auth -------------------------------------------------------------------


class UserBase(BaseModel):
    email: constr(strip_whitespace=True, to_lower=True, min_length=3, max_length=255)


class UserCreate(UserBase):
    password: constr(min_length=6, max_length=128)
    name: constr(strip_whitespace=True, min_length=2, max_length=100)


class UserLogin(UserBase):
    password: str


class UserUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=2, max_length=100)] = None


class UserOut(UserBase):
    id: int
    name: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class DeviceToken(BaseModel):
    token: constr(strip_whitespace=True, min_length=1, max_length=512)


# --- categories & budgets ---------------------------------------------------


class CategoryCreate(BaseModel):
    name: constr(strip_whitespace=True, min_length=2, max_length=30)
    icon: str = "category"
    color: HexColor = "#6C5CE7"
    monthly_budget: Optional[confloat(ge=0)] = None


class CategoryUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=2, max_length=30)] = None
    icon: Optional[str] = None
    color: Optional[HexColor] = None
    monthly_budget: Optional[confloat(ge=0)] = None
    order: Optional[int] = None


class CategoryBrief(BaseModel):
    id: int
    name: str
    icon: str
    color: str

    class Config:
        from_attributes = True


class CategoryOut(CategoryBrief):
    monthly_budget: Optional[float] = None
    is_default: bool
    order: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CategoryDeletionCheck(BaseModel):
    can_delete: bool
    expense_count: int
    message: str
    requires_confirmation: bool


class CategoryOrder(BaseModel):
    id: int
    order: int


class CategoryReorder(BaseModel):
    categories: list[CategoryOrder]


class BudgetUpdate(BaseModel):
    monthly_budget: Optional[confloat(ge=0)]


class BudgetStatus(BaseModel):
    category_id: int
    category_name: str
    category_color: str
    category_icon: str
    budget: float
    spent: float
    remaining: float
    percentage: float
    status: Literal["safe", "warning", "exceeded"]
    color: str


class BudgetSummary(BaseModel):
    total_budget: float
    total_spent: float
    total_remaining: float
    overall_percentage: float
    categories_with_budget: int
    categories_over_budget: int
    categories: list[BudgetStatus]


# --- expenses ---------------------------------------------------------------


class RecurringConfig(BaseModel):
    interval: RecurringInterval
    end_date: Optional[datetime] = None


class ExpenseCreate(BaseModel):
    category_id: int
    amount: confloat(gt=0, le=10_000_000)
    description: Optional[constr(strip_whitespace=True, max_length=200)] = None
    date: Optional[datetime] = None
    payment_method: PaymentMethod = "cash"
    tags: list[constr(strip_whitespace=True, min_length=1, max_length=50)] = []
    is_recurring: bool = False
    recurring_config: Optional[RecurringConfig] = None

    @model_validator(mode="after")
    def check_recurring(self):
        if self.is_recurring and self.recurring_config is None:
            raise ValueError("recurring_config is required for recurring expenses")
        return self


class ExpenseUpdate(BaseModel):
    category_id: Optional[int] = None
    amount: Optional[confloat(gt=0, le=10_000_000)] = None
    description: Optional[constr(strip_whitespace=True, max_length=200)] = None
    date: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    tags: Optional[list[constr(strip_whitespace=True, min_length=1, max_length=50)]] = None
    is_recurring: Optional[bool] = None
    recurring_config: Optional[RecurringConfig] = None


class ExpenseOut(BaseModel):
    id: int
    category_id: int
    amount: float
    description: Optional[str] = None
    date: datetime
    payment_method: str
    tags: list[str] = []
    is_recurring: bool = False
    recurring_interval: Optional[str] = None
    recurring_end_date: Optional[datetime] = None
    next_due_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    category: Optional[CategoryBrief] = None

    class Config:
        from_attributes = True


class ExpenseFilters(BaseModel):
    """One optional field per filter dimension; set fields are AND-combined."""

    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    category_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    payment_method: Optional[PaymentMethod] = None
    tags: list[str] = []
    sort_by: Literal["date", "amount", "created_at"] = "date"
    sort_order: Literal["asc", "desc"] = "desc"


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PaginatedExpenses(BaseModel):
    data: list[ExpenseOut]
    pagination: Pagination


class DailyExpense(BaseModel):
    date: str
    total: float
    count: int


# --- savings ----------------------------------------------------------------


class SavingsGoalCreate(BaseModel):
    title: constr(strip_whitespace=True, min_length=2, max_length=100)
    description: Optional[constr(max_length=500)] = None
    target_amount: confloat(ge=1, le=1_000_000_000)
    target_date: Optional[datetime] = None
    icon: str = "savings"
    color: HexColor = "#2ECC71"
    priority: GoalPriority = "medium"


class SavingsGoalUpdate(BaseModel):
    title: Optional[constr(strip_whitespace=True, min_length=2, max_length=100)] = None
    description: Optional[constr(max_length=500)] = None
    target_amount: Optional[confloat(ge=1, le=1_000_000_000)] = None
    target_date: Optional[datetime] = None
    icon: Optional[str] = None
    color: Optional[HexColor] = None
    priority: Optional[GoalPriority] = None


class ContributionCreate(BaseModel):
    """Positive amounts add to a goal, negative amounts withdraw from it."""

    amount: confloat(ge=-1_000_000_000, le=1_000_000_000)
    note: Optional[constr(strip_whitespace=True, max_length=200)] = None

    @field_validator("amount")
    @classmethod
    def non_zero(cls, value):
        if value == 0:
            raise ValueError("Contribution amount cannot be zero")
        return value


class ContributionOut(BaseModel):
    id: int
    amount: float
    date: datetime
    note: Optional[str] = None

    class Config:
        from_attributes = True


class SavingsGoalOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    target_amount: float
    current_amount: float
    target_date: Optional[datetime] = None
    icon: str
    color: str
    priority: str
    is_completed: bool
    completed_at: Optional[datetime] = None
    progress: float
    remaining_amount: float
    contributions: list[ContributionOut] = []
    created_at: Optional[datetime] = None


# --- tasks ------------------------------------------------------------------


class ReminderIn(BaseModel):
    enabled: bool = False
    time: Optional[datetime] = None


class RepeatIn(BaseModel):
    enabled: bool = False
    interval: Optional[Literal["daily", "weekly", "monthly"]] = None
    end_date: Optional[datetime] = None


class TaskCreate(BaseModel):
    title: constr(strip_whitespace=True, min_length=2, max_length=200)
    description: Optional[constr(max_length=1000)] = None
    priority: TaskPriority = "medium"
    status: TaskStatus = "todo"
    due_date: Optional[datetime] = None
    reminder: Optional[ReminderIn] = None
    repeat: Optional[RepeatIn] = None
    tags: list[str] = []


class TaskUpdate(BaseModel):
    title: Optional[constr(strip_whitespace=True, min_length=2, max_length=200)] = None
    description: Optional[constr(max_length=1000)] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None
    reminder: Optional[ReminderIn] = None
    repeat: Optional[RepeatIn] = None
    tags: Optional[list[str]] = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class SubtaskCreate(BaseModel):
    title: constr(strip_whitespace=True, min_length=1, max_length=200)


class SubtaskUpdate(BaseModel):
    title: Optional[constr(strip_whitespace=True, min_length=1, max_length=200)] = None
    completed: Optional[bool] = None


class TaskFilters(BaseModel):
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    tag: Optional[str] = None
    due: Optional[Literal["today", "upcoming", "overdue"]] = None
    search: Optional[str] = None


class SubtaskOut(BaseModel):
    id: int
    title: str
    completed: bool
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TaskOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    priority: str
    status: str
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    reminder: ReminderIn
    repeat: RepeatIn
    tags: list[str] = []
    subtasks: list[SubtaskOut] = []
    is_overdue: bool
    subtask_progress: int
    created_at: Optional[datetime] = None


# --- notes ------------------------------------------------------------------


class NoteCreate(BaseModel):
    title: constr(strip_whitespace=True, min_length=1, max_length=200)
    content: str = ""
    tags: list[str] = []
    color: HexColor = "#FFFFFF"
    is_pinned: bool = False


class NoteUpdate(BaseModel):
    title: Optional[constr(strip_whitespace=True, min_length=1, max_length=200)] = None
    content: Optional[str] = None
    tags: Optional[list[str]] = None
    color: Optional[HexColor] = None


class NoteFilters(BaseModel):
    archived: bool = False
    pinned: Optional[bool] = None
    tag: Optional[str] = None
    search: Optional[str] = None


class NoteOut(BaseModel):
    id: int
    title: str
    content: str
    tags: list[str] = []
    color: str
    is_pinned: bool
    is_archived: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# --- shopping lists ---------------------------------------------------------


class ShoppingItemCreate(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=100)
    category: str = "Other"
    quantity: confloat(gt=0) = 1
    unit: str = "pcs"
    estimated_price: Optional[confloat(ge=0)] = None
    actual_price: Optional[confloat(ge=0)] = None


class ShoppingItemUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=100)] = None
    category: Optional[str] = None
    quantity: Optional[confloat(gt=0)] = None
    unit: Optional[str] = None
    estimated_price: Optional[confloat(ge=0)] = None
    actual_price: Optional[confloat(ge=0)] = None
    is_purchased: Optional[bool] = None


class ShoppingListCreate(BaseModel):
    title: constr(strip_whitespace=True, min_length=1, max_length=100)
    total_budget: Optional[confloat(ge=0)] = None
    items: list[ShoppingItemCreate] = []


class ShoppingListUpdate(BaseModel):
    title: Optional[constr(strip_whitespace=True, min_length=1, max_length=100)] = None
    total_budget: Optional[confloat(ge=0)] = None


class ShoppingItemOut(BaseModel):
    id: int
    name: str
    category: str
    quantity: float
    unit: str
    estimated_price: Optional[float] = None
    actual_price: Optional[float] = None
    is_purchased: bool
    purchased_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ShoppingListOut(BaseModel):
    id: int
    title: str
    total_budget: Optional[float] = None
    is_completed: bool
    completed_at: Optional[datetime] = None
    items: list[ShoppingItemOut] = []
    total_items: int
    completed_items: int
    completion_percentage: int
    total_estimated_cost: float
    total_actual_cost: float
    budget_remaining: float
    created_at: Optional[datetime] = None


# --- chat & notifications ---------------------------------------------------


class MessageCreate(BaseModel):
    receiver_id: int
    content: constr(strip_whitespace=True, min_length=1, max_length=2000)


class MessageOut(BaseModel):
    id: int
    sender_id: int
    receiver_id: int
    content: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaginatedMessages(BaseModel):
    data: list[MessageOut]
    pagination: Pagination


class NotificationPayload(BaseModel):
    type: str
    title: str
    body: str
    data: dict[str, str] = {}


class NotificationOut(NotificationPayload):
    id: int
    device_count: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
