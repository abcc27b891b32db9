from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import arg_bool, arg_int, arg_str, current_user_id, json_body, parse_date, to_jsonable
from ..common.validators import int_list
from ..core.exceptions import NotFoundError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    config = container.fee_config_service
    billing = container.fee_billing_service
    late_fees = container.late_fee_service
    adjustments = container.fee_adjustment_service
    payments = container.fee_payment_service
    overrides = container.fee_override_service
    reports = container.fee_report_service

    def ok(data, status: int = 200):
        return jsonify(to_jsonable(data)), status

    # -------- Settings / categories / tiers / structures --------
    @app.route("/api/schools/<int:school_id>/fees/settings", methods=["GET"], endpoint="fee_settings")
    def fee_settings(school_id: int):
        return ok(config.get_settings(school_id=school_id))

    @app.route("/api/schools/<int:school_id>/fees/settings", methods=["PUT"], endpoint="save_fee_settings")
    def save_fee_settings(school_id: int):
        return ok(config.upsert_settings(school_id=school_id, changes=json_body()))

    @app.route("/api/schools/<int:school_id>/fees/categories", methods=["GET"], endpoint="fee_categories")
    def fee_categories(school_id: int):
        return ok(config.list_categories(school_id=school_id, active_only=arg_bool("active_only", True)))

    @app.route("/api/schools/<int:school_id>/fees/categories", methods=["POST"], endpoint="create_fee_category")
    def create_fee_category(school_id: int):
        body = json_body()
        category_id = config.create_category(
            school_id=school_id,
            name=body.get("name"),
            code=body.get("code"),
            description=body.get("description"),
            is_mandatory=body.get("is_mandatory", True),
            is_discountable=body.get("is_discountable", True),
            display_order=body.get("display_order", 0),
        )
        return ok({"fee_category_id": category_id}, 201)

    @app.route(
        "/api/schools/<int:school_id>/fees/categories/<int:category_id>",
        methods=["PUT"],
        endpoint="update_fee_category",
    )
    def update_fee_category(school_id: int, category_id: int):
        return ok(config.update_category(school_id=school_id, fee_category_id=category_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/fees/categories/<int:category_id>",
        methods=["DELETE"],
        endpoint="delete_fee_category",
    )
    def delete_fee_category(school_id: int, category_id: int):
        config.delete_category(school_id=school_id, fee_category_id=category_id)
        return ok({"deleted": True})

    @app.route("/api/schools/<int:school_id>/fees/sibling-tiers", methods=["GET"], endpoint="sibling_tiers")
    def sibling_tiers(school_id: int):
        return ok(config.list_tiers(school_id=school_id))

    @app.route("/api/schools/<int:school_id>/fees/sibling-tiers", methods=["PUT"], endpoint="replace_sibling_tiers")
    def replace_sibling_tiers(school_id: int):
        return ok(config.replace_tiers(school_id=school_id, tiers=json_body().get("tiers") or []))

    @app.route("/api/schools/<int:school_id>/fees/structures", methods=["GET"], endpoint="fee_structures")
    def fee_structures(school_id: int):
        return ok(config.list_structures(school_id=school_id, academic_year=arg_str("academic_year")))

    @app.route("/api/schools/<int:school_id>/fees/structures", methods=["POST"], endpoint="create_fee_structure")
    def create_fee_structure(school_id: int):
        body = json_body()
        structure_id = config.create_structure(
            school_id=school_id,
            academic_year=body.get("academic_year"),
            fee_category_id=int(body.get("fee_category_id") or 0),
            amount=body.get("amount"),
            grade_level_id=body.get("grade_level_id"),
            period_type=body.get("period_type") or "monthly",
            period_name=body.get("period_name"),
            period_number=body.get("period_number"),
            due_date=body.get("due_date"),
        )
        return ok({"fee_structure_id": structure_id}, 201)

    @app.route(
        "/api/schools/<int:school_id>/fees/structures/<int:structure_id>",
        methods=["PUT"],
        endpoint="update_fee_structure",
    )
    def update_fee_structure(school_id: int, structure_id: int):
        return ok(config.update_structure(school_id=school_id, fee_structure_id=structure_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/fees/structures/<int:structure_id>",
        methods=["DELETE"],
        endpoint="delete_fee_structure",
    )
    def delete_fee_structure(school_id: int, structure_id: int):
        config.delete_structure(school_id=school_id, fee_structure_id=structure_id)
        return ok({"deleted": True})

    # -------- Generation --------
    @app.route("/api/schools/<int:school_id>/fees/generate", methods=["POST"], endpoint="generate_student_fee")
    def generate_student_fee(school_id: int):
        body = json_body()
        fee_id = billing.generate_for_student(
            student_id=int(body.get("student_id") or 0),
            school_id=school_id,
            fee_structure_id=int(body.get("fee_structure_id") or 0),
            academic_year=body.get("academic_year"),
        )
        return ok({"student_fee_id": fee_id}, 201)

    @app.route(
        "/api/schools/<int:school_id>/fees/generate/new-student",
        methods=["POST"],
        endpoint="generate_new_student_fee",
    )
    def generate_new_student_fee(school_id: int):
        body = json_body()
        result = billing.generate_for_new_student(
            student_id=int(body.get("student_id") or 0),
            school_id=school_id,
            grade_level_id=body.get("grade_level_id"),
            service_ids=int_list(body.get("service_ids")),
            academic_year=body.get("academic_year"),
            fee_month=body.get("fee_month"),
            due_date=parse_date(body.get("due_date"), "due_date"),
            category_ids=int_list(body.get("category_ids")),
        )
        return ok(result, 201)

    @app.route(
        "/api/schools/<int:school_id>/fees/generate/monthly",
        methods=["POST"],
        endpoint="generate_monthly_fees",
    )
    def generate_monthly_fees(school_id: int):
        body = json_body()
        result = billing.generate_monthly(
            school_id=school_id,
            month=body.get("month"),
            year=body.get("year"),
            academic_year=body.get("academic_year"),
            grade_level_id=body.get("grade_level_id"),
            section_id=body.get("section_id"),
            category_ids=int_list(body.get("category_ids")),
            campus_id=body.get("campus_id"),
        )
        return ok(result)

    @app.route("/api/schools/<int:school_id>/fees/late-fees/apply", methods=["POST"], endpoint="apply_late_fees")
    def apply_late_fees(school_id: int):
        return ok(late_fees.apply_late_fees(school_id=school_id))

    # -------- Fees / reports --------
    @app.route("/api/schools/<int:school_id>/fees", methods=["GET"], endpoint="student_fees")
    def student_fees(school_id: int):
        return ok(
            reports.list_student_fees(
                school_id=school_id,
                student_id=arg_int("student_id"),
                academic_year=arg_str("academic_year"),
                status=arg_str("status"),
                page=arg_int("page"),
                limit=arg_int("limit"),
            )
        )

    @app.route("/api/schools/<int:school_id>/fees/<int:fee_id>", methods=["GET"], endpoint="student_fee")
    def student_fee(school_id: int, fee_id: int):
        fee = reports.get_student_fee(student_fee_id=fee_id, school_id=school_id)
        if not fee:
            raise NotFoundError("Fee record not found")
        return ok(fee)

    @app.route("/api/schools/<int:school_id>/fees/by-grade", methods=["GET"], endpoint="fees_by_grade")
    def fees_by_grade(school_id: int):
        return ok(
            reports.fees_by_grade(
                school_id=school_id,
                grade_level_id=arg_str("grade_level_id"),
                section_id=arg_int("section_id"),
                fee_month=arg_str("fee_month"),
                status=arg_str("status"),
                page=arg_int("page"),
                limit=arg_int("limit"),
            )
        )

    @app.route(
        "/api/schools/<int:school_id>/students/<int:student_id>/fees/history",
        methods=["GET"],
        endpoint="student_fee_history",
    )
    def student_fee_history(school_id: int, student_id: int):
        return ok(
            reports.student_fee_history(
                student_id=student_id,
                school_id=school_id,
                academic_year=arg_str("academic_year"),
                status=arg_str("status"),
                page=arg_int("page"),
                limit=arg_int("limit"),
            )
        )

    @app.route(
        "/api/schools/<int:school_id>/students/<int:student_id>/fees/summary",
        methods=["GET"],
        endpoint="student_fee_summary",
    )
    def student_fee_summary(school_id: int, student_id: int):
        return ok(reports.student_fee_summary(student_id=student_id, school_id=school_id))

    @app.route(
        "/api/schools/<int:school_id>/fees/students-summary",
        methods=["GET"],
        endpoint="students_payment_summary",
    )
    def students_payment_summary(school_id: int):
        return ok(
            reports.students_with_payment_summary(
                school_id=school_id,
                search=arg_str("search"),
                grade_level_id=arg_str("grade_level_id"),
                page=arg_int("page"),
                limit=arg_int("limit"),
            )
        )

    @app.route("/api/schools/<int:school_id>/fees/dashboard", methods=["GET"], endpoint="fee_dashboard")
    def fee_dashboard(school_id: int):
        return ok(reports.dashboard_stats(school_id=school_id, academic_year=arg_str("academic_year")))

    # -------- Adjustments --------
    @app.route(
        "/api/schools/<int:school_id>/fees/<int:fee_id>/adjustments",
        methods=["GET"],
        endpoint="fee_adjustments",
    )
    def fee_adjustments(school_id: int, fee_id: int):
        return ok(adjustments.list_adjustments(student_fee_id=fee_id, school_id=school_id))

    @app.route(
        "/api/schools/<int:school_id>/fees/<int:fee_id>/adjustments",
        methods=["POST"],
        endpoint="adjust_fee",
    )
    def adjust_fee(school_id: int, fee_id: int):
        body = json_body()
        fee = adjustments.adjust(
            student_fee_id=fee_id,
            school_id=school_id,
            admin_id=current_user_id(),
            adjustment_type=body.get("adjustment_type"),
            reason=body.get("reason"),
            new_late_fee=body.get("new_late_fee"),
            custom_discount=body.get("custom_discount"),
        )
        return ok(fee)

    @app.route(
        "/api/schools/<int:school_id>/fees/<int:fee_id>/restore-discount",
        methods=["POST"],
        endpoint="restore_fee_discount",
    )
    def restore_fee_discount(school_id: int, fee_id: int):
        return ok(adjustments.restore_discount(student_fee_id=fee_id, school_id=school_id, admin_id=current_user_id()))

    @app.route("/api/schools/<int:school_id>/fees/<int:fee_id>/waive", methods=["POST"], endpoint="waive_fee")
    def waive_fee(school_id: int, fee_id: int):
        return ok(
            adjustments.waive_fee(
                student_fee_id=fee_id,
                school_id=school_id,
                admin_id=current_user_id(),
                notes=json_body().get("notes"),
            )
        )

    # -------- Payments --------
    @app.route(
        "/api/schools/<int:school_id>/fees/<int:fee_id>/payments",
        methods=["GET"],
        endpoint="fee_payments",
    )
    def fee_payments(school_id: int, fee_id: int):
        return ok(payments.payment_history(student_fee_id=fee_id, school_id=school_id))

    @app.route(
        "/api/schools/<int:school_id>/fees/<int:fee_id>/payments",
        methods=["POST"],
        endpoint="record_fee_payment",
    )
    def record_fee_payment(school_id: int, fee_id: int):
        body = json_body()
        payment_id = payments.record_payment(
            school_id=school_id,
            student_fee_id=fee_id,
            amount=body.get("amount"),
            payment_method=body.get("payment_method") or "cash",
            payment_reference=body.get("payment_reference"),
            payment_date=body.get("payment_date"),
            received_by=current_user_id(),
            notes=body.get("notes"),
            comment=body.get("comment"),
            is_lunch_payment=bool(body.get("is_lunch_payment")),
            file_url=body.get("file_url"),
            receipt_number=body.get("receipt_number"),
            created_by=current_user_id(),
        )
        return ok({"payment_id": payment_id}, 201)

    @app.route(
        "/api/schools/<int:school_id>/students/<int:student_id>/payments",
        methods=["GET"],
        endpoint="student_payments",
    )
    def student_payments(school_id: int, student_id: int):
        return ok(payments.student_payments(student_id=student_id, school_id=school_id))

    @app.route(
        "/api/schools/<int:school_id>/students/<int:student_id>/payments",
        methods=["POST"],
        endpoint="record_direct_payment",
    )
    def record_direct_payment(school_id: int, student_id: int):
        body = json_body()
        result = payments.record_direct_payment(
            school_id=school_id,
            student_id=student_id,
            amount=body.get("amount"),
            payment_date=body.get("payment_date"),
            payment_method=body.get("payment_method") or "cash",
            comment=body.get("comment"),
            is_lunch_payment=bool(body.get("is_lunch_payment")),
            file_url=body.get("file_url"),
            receipt_number=body.get("receipt_number"),
            created_by=current_user_id(),
        )
        return ok(result, 201)

    @app.route(
        "/api/schools/<int:school_id>/payments/<int:payment_id>",
        methods=["PUT"],
        endpoint="update_fee_payment",
    )
    def update_fee_payment(school_id: int, payment_id: int):
        return ok(payments.update_payment(payment_id=payment_id, school_id=school_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/payments/<int:payment_id>",
        methods=["DELETE"],
        endpoint="delete_fee_payment",
    )
    def delete_fee_payment(school_id: int, payment_id: int):
        payments.delete_payment(payment_id=payment_id, school_id=school_id)
        return ok({"deleted": True})

    # -------- Overrides --------
    @app.route("/api/schools/<int:school_id>/fees/overrides", methods=["GET"], endpoint="fee_overrides")
    def fee_overrides(school_id: int):
        raw_active = arg_str("is_active")
        is_active = None if raw_active == "all" else arg_bool("is_active", True)
        return ok(
            overrides.list_for_school(
                school_id=school_id,
                academic_year=arg_str("academic_year"),
                fee_category_id=arg_int("fee_category_id"),
                is_active=is_active,
                page=arg_int("page"),
                limit=arg_int("limit"),
            )
        )

    @app.route("/api/schools/<int:school_id>/fees/overrides", methods=["POST"], endpoint="create_fee_override")
    def create_fee_override(school_id: int):
        body = json_body()
        override_id = overrides.create(
            school_id=school_id,
            student_id=int(body.get("student_id") or 0),
            fee_category_id=int(body.get("fee_category_id") or 0),
            academic_year=body.get("academic_year"),
            override_amount=body.get("override_amount"),
            reason=body.get("reason"),
            created_by=current_user_id(),
        )
        return ok({"override_id": override_id}, 201)

    @app.route(
        "/api/schools/<int:school_id>/students/<int:student_id>/fees/overrides",
        methods=["GET"],
        endpoint="student_fee_overrides",
    )
    def student_fee_overrides(school_id: int, student_id: int):
        return ok(
            overrides.list_for_student(
                school_id=school_id, student_id=student_id, academic_year=arg_str("academic_year")
            )
        )

    @app.route(
        "/api/schools/<int:school_id>/fees/overrides/<int:override_id>",
        methods=["GET"],
        endpoint="fee_override",
    )
    def fee_override(school_id: int, override_id: int):
        return ok(overrides.get(school_id=school_id, override_id=override_id))

    @app.route(
        "/api/schools/<int:school_id>/fees/overrides/<int:override_id>",
        methods=["PUT"],
        endpoint="update_fee_override",
    )
    def update_fee_override(school_id: int, override_id: int):
        return ok(overrides.update(school_id=school_id, override_id=override_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/fees/overrides/<int:override_id>",
        methods=["DELETE"],
        endpoint="delete_fee_override",
    )
    def delete_fee_override(school_id: int, override_id: int):
        overrides.delete(school_id=school_id, override_id=override_id)
        return ok({"deleted": True})
