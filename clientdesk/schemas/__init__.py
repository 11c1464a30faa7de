from .common import ApiResponse, ErrorResponse
from .user import User, UserCreate, UserUpdate
from .client import Client, ClientCreate, ClientUpdate
from .employee import Employee, EmployeeCreate, EmployeeUpdate
from .project import (
    Project, ProjectCreate, ProjectUpdate, ProjectWithDetails,
    ProjectMember, ProjectMemberCreate
)
from .project_status import StatusUpdateRequest, UpdatedStatus, StatusHistoryEntry
from .task import Task, TaskCreate, TaskUpdate, TaskStatusUpdate, TaskFilter, TaskList
from .task_comment import TaskComment, TaskCommentCreate, TaskCommentUpdate, Attachment, Mention
from .task_history import TaskHistoryEntry, HistoryValue
from .invoice import (
    Invoice, InvoiceCreate, InvoiceStatusUpdate, InvoiceItem, Payment, PaymentCreate, OverdueSweep
)
from .stats import (
    StatsFilter, ProjectStats, TaskStats, ClientStats, EmployeeStats, InvoiceStats, TeamMemberLoad
)

__all__ = [
    "ApiResponse", "ErrorResponse",
    # User schemas
    "User", "UserCreate", "UserUpdate",
    # Client and employee schemas
    "Client", "ClientCreate", "ClientUpdate",
    "Employee", "EmployeeCreate", "EmployeeUpdate",
    # Project schemas
    "Project", "ProjectCreate", "ProjectUpdate", "ProjectWithDetails",
    "ProjectMember", "ProjectMemberCreate",
    "StatusUpdateRequest", "UpdatedStatus", "StatusHistoryEntry",
    # Task schemas
    "Task", "TaskCreate", "TaskUpdate", "TaskStatusUpdate", "TaskFilter", "TaskList",
    "TaskComment", "TaskCommentCreate", "TaskCommentUpdate", "Attachment", "Mention",
    "TaskHistoryEntry", "HistoryValue",
    # Invoice schemas
    "Invoice", "InvoiceCreate", "InvoiceStatusUpdate", "InvoiceItem", "Payment", "PaymentCreate",
    "OverdueSweep",
    # Stats schemas
    "StatsFilter", "ProjectStats", "TaskStats", "ClientStats", "EmployeeStats", "InvoiceStats",
    "TeamMemberLoad",
]
