from .user import User, UserRole
from .client import Client, ClientStatus
from .employee import Employee, EmployeeRole, EmployeeStatus
from .project import Project, ProjectStatus, ProjectPriority
from .project_member import ProjectMember, TeamRole
from .project_status_history import ProjectStatusHistory
from .task import Task, TaskStatus, TaskPriority
from .task_comment import TaskComment
from .task_history import TaskHistory, HistoryAction
from .invoice import Invoice, InvoicePayment, InvoiceStatus, PaymentMethod
from .code_counter import CodeCounter

__all__ = [
    "User",
    "UserRole",
    "Client",
    "ClientStatus",
    "Employee",
    "EmployeeRole",
    "EmployeeStatus",
    "Project",
    "ProjectStatus",
    "ProjectPriority",
    "ProjectMember",
    "TeamRole",
    "ProjectStatusHistory",
    "Task",
    "TaskStatus",
    "TaskPriority",
    "TaskComment",
    "TaskHistory",
    "HistoryAction",
    "Invoice",
    "InvoicePayment",
    "InvoiceStatus",
    "PaymentMethod",
    "CodeCounter",
]
