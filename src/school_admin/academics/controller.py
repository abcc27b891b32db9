from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import arg_bool, arg_int, json_body, to_jsonable
from ..container import Container


def register(app: Flask, container: Container) -> None:
    years = container.academic_year_service
    grades = container.grade_level_service
    sections = container.section_service
    subjects = container.subject_service

    def ok(data, status: int = 200):
        return jsonify(to_jsonable(data)), status

    # -------- Academic years --------
    @app.route("/api/schools/<int:school_id>/academic-years", methods=["GET"], endpoint="academic_years")
    def academic_years(school_id: int):
        return ok(years.list(school_id=school_id))

    @app.route(
        "/api/schools/<int:school_id>/academic-years/current",
        methods=["GET"],
        endpoint="current_academic_year",
    )
    def current_academic_year(school_id: int):
        return ok(years.current(school_id=school_id))

    @app.route("/api/schools/<int:school_id>/academic-years", methods=["POST"], endpoint="create_academic_year")
    def create_academic_year(school_id: int):
        body = json_body()
        year_id = years.create(
            school_id=school_id,
            name=body.get("name"),
            start_date=body.get("start_date"),
            end_date=body.get("end_date"),
            is_current=bool(body.get("is_current")),
            is_next=bool(body.get("is_next")),
        )
        return ok({"academic_year_id": year_id}, 201)

    @app.route(
        "/api/schools/<int:school_id>/academic-years/<int:year_id>",
        methods=["PUT"],
        endpoint="update_academic_year",
    )
    def update_academic_year(school_id: int, year_id: int):
        return ok(years.update(school_id=school_id, academic_year_id=year_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/academic-years/<int:year_id>",
        methods=["DELETE"],
        endpoint="delete_academic_year",
    )
    def delete_academic_year(school_id: int, year_id: int):
        years.delete(school_id=school_id, academic_year_id=year_id)
        return ok({"deleted": True})

    # -------- Grade levels --------
    @app.route("/api/schools/<int:school_id>/grade-levels", methods=["GET"], endpoint="grade_levels")
    def grade_levels(school_id: int):
        return ok(grades.list(school_id=school_id, include_inactive=arg_bool("include_inactive", False)))

    @app.route(
        "/api/schools/<int:school_id>/grade-levels/<int:grade_id>",
        methods=["GET"],
        endpoint="grade_level",
    )
    def grade_level(school_id: int, grade_id: int):
        return ok(grades.get(school_id=school_id, grade_level_id=grade_id))

    @app.route("/api/schools/<int:school_id>/grade-levels", methods=["POST"], endpoint="create_grade_level")
    def create_grade_level(school_id: int):
        body = json_body()
        grade_id = grades.create(
            school_id=school_id,
            name=body.get("name"),
            order_index=body.get("order_index", 0),
            base_fee=body.get("base_fee", 0),
        )
        return ok({"grade_level_id": grade_id}, 201)

    @app.route(
        "/api/schools/<int:school_id>/grade-levels/<int:grade_id>",
        methods=["PUT"],
        endpoint="update_grade_level",
    )
    def update_grade_level(school_id: int, grade_id: int):
        return ok(grades.update(school_id=school_id, grade_level_id=grade_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/grade-levels/<int:grade_id>",
        methods=["DELETE"],
        endpoint="delete_grade_level",
    )
    def delete_grade_level(school_id: int, grade_id: int):
        grades.delete(school_id=school_id, grade_level_id=grade_id)
        return ok({"deleted": True})

    # -------- Sections --------
    @app.route("/api/schools/<int:school_id>/sections", methods=["GET"], endpoint="sections")
    def list_sections(school_id: int):
        return ok(sections.list(school_id=school_id, grade_level_id=arg_int("grade_level_id")))

    @app.route("/api/schools/<int:school_id>/sections", methods=["POST"], endpoint="create_section")
    def create_section(school_id: int):
        body = json_body()
        section_id = sections.create(
            school_id=school_id,
            grade_level_id=body.get("grade_level_id"),
            name=body.get("name"),
            capacity=body.get("capacity", 30),
        )
        return ok({"section_id": section_id}, 201)

    @app.route(
        "/api/schools/<int:school_id>/sections/<int:section_id>",
        methods=["PUT"],
        endpoint="update_section",
    )
    def update_section(school_id: int, section_id: int):
        return ok(sections.update(school_id=school_id, section_id=section_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/sections/<int:section_id>",
        methods=["DELETE"],
        endpoint="delete_section",
    )
    def delete_section(school_id: int, section_id: int):
        sections.delete(school_id=school_id, section_id=section_id)
        return ok({"deleted": True})

    # -------- Subjects --------
    @app.route("/api/schools/<int:school_id>/subjects", methods=["GET"], endpoint="subjects")
    def list_subjects(school_id: int):
        return ok(subjects.list(school_id=school_id, grade_level_id=arg_int("grade_level_id")))

    @app.route("/api/schools/<int:school_id>/subjects", methods=["POST"], endpoint="create_subject")
    def create_subject(school_id: int):
        body = json_body()
        subject_id = subjects.create(
            school_id=school_id,
            grade_level_id=body.get("grade_level_id"),
            name=body.get("name"),
            code=body.get("code"),
            subject_type=body.get("subject_type") or "theory",
        )
        return ok({"subject_id": subject_id}, 201)

    @app.route(
        "/api/schools/<int:school_id>/subjects/<int:subject_id>",
        methods=["PUT"],
        endpoint="update_subject",
    )
    def update_subject(school_id: int, subject_id: int):
        return ok(subjects.update(school_id=school_id, subject_id=subject_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/subjects/<int:subject_id>",
        methods=["DELETE"],
        endpoint="delete_subject",
    )
    def delete_subject(school_id: int, subject_id: int):
        subjects.delete(school_id=school_id, subject_id=subject_id)
        return ok({"deleted": True})
