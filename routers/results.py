# quiz-sessions/routers/results.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from db import get_db
from deps.auth import current_student, require_client
from repositories import ResultRepository
from schemas.results import ResultOut

router = APIRouter(prefix="/results", tags=["results"])


def _rows(items) -> list[dict]:
    # Reuse schema; exclude potentially large JSON "answers"
    return [
        ResultOut.model_validate(r).model_dump(by_alias=True, exclude={"answers"}) for r in items
    ]


@router.get("/recent-list", dependencies=[Depends(require_client)])
def results_recent(limit: int = 20, db: Session = Depends(get_db)):
    limit = max(1, min(limit, 100))
    rows = _rows(ResultRepository(db).recent(limit))
    return {"ok": True, "items": rows, "count": len(rows)}


@router.get("/mine")
def my_results(student_id: int = Depends(current_student), db: Session = Depends(get_db)):
    rows = _rows(ResultRepository(db).list_for_student(student_id))
    return {"ok": True, "items": rows, "count": len(rows)}


@router.get("/{result_id}", response_model=ResultOut)
def get_result(
    result_id: int,
    student_id: int = Depends(current_student),
    db: Session = Depends(get_db),
):
    r = ResultRepository(db).get(result_id)
    # someone else's result is reported exactly like a missing one
    if not r or r.student_id != student_id:
        raise HTTPException(status_code=404, detail="Result not found")
    return ResultOut.model_validate(r)
