from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import arg_int, arg_str, json_body, to_jsonable
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    grading = container.grading_service

    def ok(data, status: int = 200):
        return jsonify(to_jsonable(data)), status

    @app.route("/api/schools/<int:school_id>/grading-scales", methods=["GET"], endpoint="grading_scales")
    def grading_scales(school_id: int):
        return ok(grading.list_scales(school_id=school_id, campus_id=arg_int("campus_id")))

    @app.route("/api/schools/<int:school_id>/grading-scales", methods=["POST"], endpoint="create_grading_scale")
    def create_grading_scale(school_id: int):
        body = json_body()
        scale = grading.create_scale(
            school_id=school_id,
            title=body.get("title"),
            scale_type=body.get("scale_type", "percentage"),
            campus_id=body.get("campus_id"),
            comment=body.get("comment"),
            is_default=bool(body.get("is_default")),
            sort_order=body.get("sort_order", 0),
            grades=body.get("grades") or [],
        )
        return ok(scale, 201)

    @app.route(
        "/api/schools/<int:school_id>/grading-scales/seed-default",
        methods=["POST"],
        endpoint="seed_default_grading_scale",
    )
    def seed_default_grading_scale(school_id: int):
        return ok(grading.seed_default_scale(school_id=school_id), 201)

    @app.route("/api/schools/<int:school_id>/grading/gpa", methods=["POST"], endpoint="calculate_gpa")
    def calculate_gpa(school_id: int):
        entries = json_body().get("entries") or []
        if not isinstance(entries, list):
            raise ValidationError("entries must be a list")
        return ok({"gpa": grading.gpa(entries)})

    @app.route(
        "/api/schools/<int:school_id>/grading-scales/<int:scale_id>",
        methods=["GET"],
        endpoint="grading_scale",
    )
    def grading_scale(school_id: int, scale_id: int):
        return ok(grading.get_scale(school_id=school_id, grading_scale_id=scale_id))

    @app.route(
        "/api/schools/<int:school_id>/grading-scales/<int:scale_id>",
        methods=["PUT"],
        endpoint="update_grading_scale",
    )
    def update_grading_scale(school_id: int, scale_id: int):
        return ok(grading.update_scale(school_id=school_id, grading_scale_id=scale_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/grading-scales/<int:scale_id>",
        methods=["DELETE"],
        endpoint="delete_grading_scale",
    )
    def delete_grading_scale(school_id: int, scale_id: int):
        grading.delete_scale(school_id=school_id, grading_scale_id=scale_id)
        return ok({"deleted": True})

    @app.route(
        "/api/schools/<int:school_id>/grading-scales/<int:scale_id>/grades",
        methods=["GET"],
        endpoint="scale_grades",
    )
    def scale_grades(school_id: int, scale_id: int):
        return ok(grading.list_grades(school_id=school_id, grading_scale_id=scale_id))

    @app.route(
        "/api/schools/<int:school_id>/grading-scales/<int:scale_id>/grades",
        methods=["POST"],
        endpoint="add_scale_grades",
    )
    def add_scale_grades(school_id: int, scale_id: int):
        body = json_body()
        grades = body.get("grades") if "grades" in body else [body]
        ids = grading.add_grades(school_id=school_id, grading_scale_id=scale_id, grades=grades)
        return ok({"grade_ids": ids}, 201)

    @app.route(
        "/api/schools/<int:school_id>/grading-scales/<int:scale_id>/letter-grade",
        methods=["GET"],
        endpoint="letter_grade",
    )
    def letter_grade(school_id: int, scale_id: int):
        grade = grading.letter_grade(
            school_id=school_id,
            grading_scale_id=scale_id,
            percentage=arg_str("percentage"),
        )
        return ok({"grade": grade})

    @app.route("/api/schools/<int:school_id>/scale-grades/<int:grade_id>", methods=["PUT"], endpoint="update_scale_grade")
    def update_scale_grade(school_id: int, grade_id: int):
        return ok(grading.update_grade(school_id=school_id, grade_id=grade_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/scale-grades/<int:grade_id>",
        methods=["DELETE"],
        endpoint="delete_scale_grade",
    )
    def delete_scale_grade(school_id: int, grade_id: int):
        grading.delete_grade(school_id=school_id, grade_id=grade_id)
        return ok({"deleted": True})
