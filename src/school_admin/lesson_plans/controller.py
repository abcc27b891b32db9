from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import arg_int, arg_str, current_user_id, json_body, to_jsonable
from ..container import Container


def register(app: Flask, container: Container) -> None:
    lessons = container.lesson_plan_service

    def ok(data, status: int = 200):
        return jsonify(to_jsonable(data)), status

    @app.route("/api/schools/<int:school_id>/lesson-plans", methods=["GET"], endpoint="lesson_plans")
    def lesson_plans(school_id: int):
        return ok(
            lessons.list_lessons(
                school_id=school_id,
                course_period_id=arg_int("course_period_id"),
                teacher_id=arg_int("teacher_id"),
                campus_id=arg_int("campus_id"),
                academic_year_id=arg_int("academic_year_id"),
                date_from=arg_str("from"),
                date_to=arg_str("to"),
                page=arg_int("page"),
                limit=arg_int("limit"),
            )
        )

    @app.route("/api/schools/<int:school_id>/lesson-plans/summary", methods=["GET"], endpoint="lesson_plan_summary")
    def lesson_plan_summary(school_id: int):
        return ok(
            lessons.summary(
                school_id=school_id,
                teacher_id=arg_int("teacher_id"),
                campus_id=arg_int("campus_id"),
                academic_year_id=arg_int("academic_year_id"),
            )
        )

    @app.route("/api/schools/<int:school_id>/lesson-plans", methods=["POST"], endpoint="create_lesson_plan")
    def create_lesson_plan(school_id: int):
        body = json_body()
        lesson = lessons.create_lesson(
            school_id=school_id,
            data=body,
            campus_id=body.get("campus_id"),
            created_by=current_user_id(),
        )
        return ok(lesson, 201)

    @app.route("/api/schools/<int:school_id>/lesson-plans/<int:lesson_id>", methods=["GET"], endpoint="lesson_plan")
    def lesson_plan(school_id: int, lesson_id: int):
        return ok(lessons.get_lesson(school_id=school_id, lesson_id=lesson_id))

    @app.route(
        "/api/schools/<int:school_id>/lesson-plans/<int:lesson_id>",
        methods=["PUT"],
        endpoint="update_lesson_plan",
    )
    def update_lesson_plan(school_id: int, lesson_id: int):
        return ok(lessons.update_lesson(school_id=school_id, lesson_id=lesson_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/lesson-plans/<int:lesson_id>",
        methods=["DELETE"],
        endpoint="delete_lesson_plan",
    )
    def delete_lesson_plan(school_id: int, lesson_id: int):
        lessons.delete_lesson(school_id=school_id, lesson_id=lesson_id)
        return ok({"deleted": True})

    @app.route(
        "/api/schools/<int:school_id>/lesson-plans/<int:lesson_id>/items",
        methods=["PUT"],
        endpoint="replace_lesson_plan_items",
    )
    def replace_lesson_plan_items(school_id: int, lesson_id: int):
        items = json_body().get("items") or []
        return ok(lessons.replace_items(school_id=school_id, lesson_id=lesson_id, items=items))

    @app.route(
        "/api/schools/<int:school_id>/lesson-plans/<int:lesson_id>/files",
        methods=["POST"],
        endpoint="add_lesson_plan_file",
    )
    def add_lesson_plan_file(school_id: int, lesson_id: int):
        body = json_body()
        stored = lessons.add_file(
            school_id=school_id,
            lesson_id=lesson_id,
            file_name=body.get("file_name"),
            file_url=body.get("file_url"),
            file_type=body.get("file_type"),
            file_size=body.get("file_size"),
            uploaded_by=current_user_id(),
        )
        return ok(stored, 201)

    @app.route(
        "/api/schools/<int:school_id>/lesson-plan-files/<int:file_id>",
        methods=["DELETE"],
        endpoint="remove_lesson_plan_file",
    )
    def remove_lesson_plan_file(school_id: int, file_id: int):
        lessons.remove_file(school_id=school_id, file_id=file_id)
        return ok({"deleted": True})
