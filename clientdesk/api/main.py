from fastapi import APIRouter

from clientdesk.api.v1 import clients, employees, invoices, project_status, projects, tasks, users

api_router = APIRouter()
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(clients.router, prefix="/clients", tags=["clients"])
api_router.include_router(employees.router, prefix="/employees", tags=["employees"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(project_status.router, prefix="/project-status", tags=["project-status"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["invoices"])
