"""Todo API endpoints. Every route is scoped to the authenticated owner."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from taskflow.database import get_db
from taskflow.dependencies import CurrentUser, get_current_user
from taskflow.rate_limit import global_limit
from taskflow.schemas.base import MessageResponse
from taskflow.schemas.todo import TodoCreate, TodoEnvelope, TodoListResponse, TodoResponse, TodoUpdate
from taskflow.services.todo import get_todo_service

router = APIRouter(prefix="/api/v1/todo", tags=["Todos"])


@router.post("/create-todo", response_model=TodoEnvelope, status_code=status.HTTP_201_CREATED)
@global_limit
def create_todo(
    request: Request,
    body: TodoCreate,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TodoEnvelope:
    todo = get_todo_service().create_todo(db, user.user_id, body)
    return TodoEnvelope(message="Todo created", todo=TodoResponse.model_validate(todo))


@router.get("/all-todos", response_model=TodoListResponse)
@global_limit
def list_todos(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TodoListResponse:
    """List all todos for the current user, newest first."""
    todos = get_todo_service().get_user_todos(db, user.user_id)
    return TodoListResponse(count=len(todos), todos=[TodoResponse.model_validate(t) for t in todos])


@router.put("/update-todo/{todo_id}", response_model=TodoEnvelope)
@global_limit
def update_todo(
    request: Request,
    todo_id: str,
    body: TodoUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TodoEnvelope:
    """Partially update a todo. Status changes maintain completedAt."""
    todo = get_todo_service().update_todo(db, todo_id, user.user_id, body)
    return TodoEnvelope(message="Updated successfully", todo=TodoResponse.model_validate(todo))


@router.delete("/delete-todo/{todo_id}", response_model=MessageResponse)
@global_limit
def delete_todo(
    request: Request,
    todo_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    get_todo_service().delete_todo(db, todo_id, user.user_id)
    return MessageResponse(message="Todo deleted successfully")
