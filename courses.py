# courses.py
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Set

from flask import Blueprint, jsonify, request

from errors import MissingInput, NotFound
from schemas import CourseIn, validate
from store import COURSES


def create_courses_blueprint(base_path: str, deps: Dict[str, Any], name: str = "courses") -> Blueprint:
    """
    Registers:
      - GET  /api/courses?teacherId
      - POST /api/courses
      - GET  /api/courses/<id>/students
      - GET  /api/students?teacherId   (distinct emails across the teacher's courses)
    Required deps: store
    """
    bp = Blueprint(name, __name__, url_prefix=f"{base_path}/api")
    store = deps["store"]

    def _teacher_id() -> str:
        teacher_id = (request.args.get("teacherId") or "").strip()
        if not teacher_id:
            raise MissingInput("teacherId required")
        return teacher_id

    @bp.get("/courses")
    def list_courses():
        return jsonify({"ok": True, "courses": store.find(COURSES, {"teacherId": _teacher_id()})})

    @bp.post("/courses")
    def create_course():
        body = validate(CourseIn, request.get_json(silent=True))
        course_id = uuid.uuid4().hex
        doc = body.model_dump()
        doc["createdAt"] = datetime.now(timezone.utc).isoformat()
        saved = store.insert(COURSES, course_id, doc)
        print(f"[courses] created {course_id} for teacher {body.teacherId}", flush=True)
        return jsonify({"ok": True, "course": saved})

    @bp.get("/courses/<course_id>/students")
    def course_students(course_id: str):
        course = store.get(COURSES, course_id)
        if not course:
            raise NotFound("course not found")
        students = course.get("students")
        return jsonify({"ok": True, "students": students if isinstance(students, list) else []})

    @bp.get("/students")
    def teacher_students():
        seen: Set[str] = set()
        for c in store.find(COURSES, {"teacherId": _teacher_id()}):
            for s in c.get("students") or []:
                if s:
                    seen.add(str(s))
        return jsonify({"ok": True, "students": sorted(seen)})

    return bp
