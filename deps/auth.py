import os
from typing import Annotated

from fastapi import Header, HTTPException


def require_admin(
    x_admin_token: Annotated[str | None, Header(alias="x-admin-token")] = None,
) -> None:
    """
    Strict admin-only guard. Requires the X-Admin-Token header to match ADMIN_TOKEN.
    """
    admin_token = os.getenv("ADMIN_TOKEN", "")
    if not admin_token:
        raise HTTPException(status_code=500, detail="ADMIN_TOKEN not configured on server.")
    if x_admin_token != admin_token:
        raise HTTPException(status_code=401, detail="Unauthorized.")


def require_client(
    x_api_key: Annotated[str | None, Header(alias="x-api-key")] = None,
    x_admin_token: Annotated[str | None, Header(alias="x-admin-token")] = None,
) -> None:
    """
    Client/API guard. Accepts either:
      - X-Admin-Token that matches ADMIN_TOKEN (admins always allowed), or
      - X-Api-Key that matches QUIZ_API_KEY.
    """
    admin_token = os.getenv("ADMIN_TOKEN", "")
    api_key = os.getenv("QUIZ_API_KEY", "")

    # Admin token grants access
    if admin_token and x_admin_token == admin_token:
        return

    # Otherwise require the public API key
    if not api_key:
        raise HTTPException(status_code=500, detail="QUIZ_API_KEY not configured on server.")
    if x_api_key != api_key:
        raise HTTPException(status_code=401, detail="Unauthorized.")


def current_student(
    x_student_id: Annotated[str | None, Header(alias="x-student-id")] = None,
) -> int:
    """
    The gateway in front of this service authenticates the student and forwards
    their id in X-Student-Id; we only check it is present and well formed.
    """
    if not x_student_id:
        raise HTTPException(status_code=401, detail="Student identity required.")
    try:
        student_id = int(x_student_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid student identity.")
    if student_id < 1:
        raise HTTPException(status_code=401, detail="Invalid student identity.")
    return student_id
