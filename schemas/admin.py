from pydantic import BaseModel, ConfigDict, Field


class EnrollmentIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    student_id: int = Field(ge=1, alias="studentId")
    course_id: int = Field(ge=1, alias="courseId")
