"""Todo service for owner-scoped CRUD and completion tracking."""

from datetime import datetime

from sqlalchemy.orm import Session

from taskflow.errors import NotFoundError
from taskflow.models.todo import Todo
from taskflow.schemas.todo import TodoCreate, TodoUpdate

# Columns that may not be set to NULL through a partial update
NON_NULLABLE_FIELDS = {"title", "description", "priority", "status"}

# Largest value a signed 64-bit INTEGER column can hold
MAX_TODO_ID = 2**63 - 1


def parse_todo_id(raw_id: str) -> int:
    """Normalize a path identifier. Anything that is not a positive integer in column range is NotFound."""
    try:
        todo_id = int(raw_id)
    except (TypeError, ValueError):
        raise NotFoundError("Resource not found (Invalid ID format)") from None
    if not 0 < todo_id <= MAX_TODO_ID:
        raise NotFoundError("Resource not found (Invalid ID format)")
    return todo_id


def apply_completion(todo: Todo, new_status: str | None, now: datetime | None = None) -> None:
    """Set completed_at entering done, clear it leaving done, leave it alone otherwise."""
    if new_status is None or new_status == todo.status:
        return
    if new_status == "done":
        todo.completed_at = now or datetime.utcnow()
    elif todo.status == "done":
        todo.completed_at = None


class TodoService:
    """Handles todo creation, listing, updates and deletion for a single owner."""

    def create_todo(self, db: Session, user_id: int, data: TodoCreate) -> Todo:
        todo = Todo(
            user_id=user_id,
            title=data.title,
            description=data.description,
            deadline=data.deadline,
            priority=data.priority,
            status=data.status,
            completed_at=datetime.utcnow() if data.status == "done" else None,
        )
        db.add(todo)
        db.commit()
        db.refresh(todo)
        return todo

    def get_user_todos(self, db: Session, user_id: int) -> list[Todo]:
        """Get all todos for a user, newest first."""
        return (
            db.query(Todo)
            .filter(Todo.user_id == user_id)
            .order_by(Todo.created_at.desc(), Todo.id.desc())
            .all()
        )

    def get_todo(self, db: Session, raw_id: str, user_id: int) -> Todo:
        """Get a single todo scoped to its owner. Foreign and missing ids look the same."""
        todo_id = parse_todo_id(raw_id)
        todo = db.query(Todo).filter(Todo.id == todo_id, Todo.user_id == user_id).first()
        if not todo:
            raise NotFoundError("Todo not found")
        return todo

    def update_todo(self, db: Session, raw_id: str, user_id: int, data: TodoUpdate) -> Todo:
        todo = self.get_todo(db, raw_id, user_id)
        updates = data.model_dump(exclude_unset=True)
        for field in NON_NULLABLE_FIELDS:
            if field in updates and updates[field] is None:
                del updates[field]

        apply_completion(todo, updates.get("status"))
        for field, value in updates.items():
            setattr(todo, field, value)

        db.commit()
        db.refresh(todo)
        return todo

    def delete_todo(self, db: Session, raw_id: str, user_id: int) -> None:
        todo = self.get_todo(db, raw_id, user_id)
        db.delete(todo)
        db.commit()


_todo_service: TodoService | None = None


def get_todo_service() -> TodoService:
    """Get singleton todo service instance."""
    global _todo_service
    if _todo_service is None:
        _todo_service = TodoService()
    return _todo_service
