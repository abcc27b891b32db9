from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import today_local
from ..common.web import arg_bool, arg_date, arg_str, current_user_id, json_body, to_jsonable
from ..container import Container


def register(app: Flask, container: Container) -> None:
    accounting = container.accounting_service
    payees = container.payee_service

    def ok(data, status: int = 200):
        return jsonify(to_jsonable(data)), status

    # -------- Categories --------
    @app.route("/api/schools/<int:school_id>/accounting/categories", methods=["GET"], endpoint="accounting_categories")
    def accounting_categories(school_id: int):
        return ok(accounting.list_categories(school_id=school_id, category_type=arg_str("type")))

    @app.route(
        "/api/schools/<int:school_id>/accounting/categories",
        methods=["POST"],
        endpoint="create_accounting_category",
    )
    def create_accounting_category(school_id: int):
        body = json_body()
        category_id = accounting.create_category(
            school_id=school_id,
            name=body.get("name"),
            category_type=body.get("category_type"),
            description=body.get("description"),
            display_order=body.get("display_order", 0),
        )
        return ok({"category_id": category_id}, 201)

    @app.route(
        "/api/schools/<int:school_id>/accounting/categories/<int:category_id>",
        methods=["PUT"],
        endpoint="update_accounting_category",
    )
    def update_accounting_category(school_id: int, category_id: int):
        return ok(accounting.update_category(school_id=school_id, category_id=category_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/accounting/categories/<int:category_id>",
        methods=["DELETE"],
        endpoint="delete_accounting_category",
    )
    def delete_accounting_category(school_id: int, category_id: int):
        accounting.delete_category(school_id=school_id, category_id=category_id)
        return ok({"deleted": True})

    # -------- Incomes --------
    @app.route("/api/schools/<int:school_id>/accounting/incomes", methods=["GET"], endpoint="incomes")
    def incomes(school_id: int):
        return ok(
            accounting.list_incomes(
                campus_id=school_id,
                academic_year=arg_str("academic_year"),
                start=arg_date("start_date"),
                end=arg_date("end_date"),
            )
        )

    @app.route("/api/schools/<int:school_id>/accounting/incomes", methods=["POST"], endpoint="create_income")
    def create_income(school_id: int):
        body = json_body()
        income_id = accounting.create_income(
            campus_id=school_id,
            academic_year=body.get("academic_year"),
            title=body.get("title"),
            amount=body.get("amount"),
            income_date=body.get("income_date"),
            category_id=body.get("category_id"),
            comments=body.get("comments"),
            file_attached=body.get("file_attached"),
            created_by=current_user_id(),
        )
        return ok({"income_id": income_id}, 201)

    @app.route(
        "/api/schools/<int:school_id>/accounting/incomes/<int:income_id>",
        methods=["PUT"],
        endpoint="update_income",
    )
    def update_income(school_id: int, income_id: int):
        return ok(accounting.update_income(campus_id=school_id, income_id=income_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/accounting/incomes/<int:income_id>",
        methods=["DELETE"],
        endpoint="delete_income",
    )
    def delete_income(school_id: int, income_id: int):
        accounting.delete_income(campus_id=school_id, income_id=income_id)
        return ok({"deleted": True})

    # -------- Expenses / staff payments --------
    @app.route("/api/schools/<int:school_id>/accounting/payments", methods=["GET"], endpoint="accounting_payments")
    def accounting_payments(school_id: int):
        return ok(
            accounting.list_payments(
                campus_id=school_id,
                academic_year=arg_str("academic_year"),
                staff_payments=arg_bool("staff", False),
                start=arg_date("start_date"),
                end=arg_date("end_date"),
            )
        )

    @app.route(
        "/api/schools/<int:school_id>/accounting/payments",
        methods=["POST"],
        endpoint="create_accounting_payment",
    )
    def create_accounting_payment(school_id: int):
        body = json_body()
        payment_id = accounting.create_payment(
            campus_id=school_id,
            academic_year=body.get("academic_year"),
            title=body.get("title"),
            amount=body.get("amount"),
            payment_date=body.get("payment_date"),
            staff_id=body.get("staff_id"),
            category_id=body.get("category_id"),
            comments=body.get("comments"),
            file_attached=body.get("file_attached"),
            created_by=current_user_id(),
        )
        return ok({"accounting_payment_id": payment_id}, 201)

    @app.route(
        "/api/schools/<int:school_id>/accounting/payments/<int:payment_id>",
        methods=["PUT"],
        endpoint="update_accounting_payment",
    )
    def update_accounting_payment(school_id: int, payment_id: int):
        return ok(
            accounting.update_payment(campus_id=school_id, accounting_payment_id=payment_id, changes=json_body())
        )

    @app.route(
        "/api/schools/<int:school_id>/accounting/payments/<int:payment_id>",
        methods=["DELETE"],
        endpoint="delete_accounting_payment",
    )
    def delete_accounting_payment(school_id: int, payment_id: int):
        accounting.delete_payment(campus_id=school_id, accounting_payment_id=payment_id)
        return ok({"deleted": True})

    # -------- Reports --------
    @app.route("/api/schools/<int:school_id>/accounting/totals", methods=["GET"], endpoint="accounting_totals")
    def accounting_totals(school_id: int):
        return ok(
            accounting.totals(
                campus_id=school_id,
                academic_year=arg_str("academic_year"),
                start=arg_date("start_date"),
                end=arg_date("end_date"),
            )
        )

    @app.route("/api/schools/<int:school_id>/accounting/daily", methods=["GET"], endpoint="daily_transactions")
    def daily_transactions(school_id: int):
        return ok(
            accounting.daily_transactions(
                campus_id=school_id,
                academic_year=arg_str("academic_year"),
                day=arg_date("date") or today_local(),
            )
        )

    @app.route(
        "/api/schools/<int:school_id>/accounting/staff-balances",
        methods=["GET"],
        endpoint="staff_balances",
    )
    def staff_balances(school_id: int):
        return ok(
            accounting.staff_balances(
                campus_id=school_id,
                academic_year=arg_str("academic_year"),
                start=arg_date("start_date"),
                end=arg_date("end_date"),
            )
        )

    # -------- Payees --------
    @app.route("/api/schools/<int:school_id>/payees", methods=["GET"], endpoint="payees")
    def list_payees(school_id: int):
        return ok(payees.list(school_id=school_id))

    @app.route("/api/schools/<int:school_id>/payees/<int:payee_id>", methods=["GET"], endpoint="payee")
    def payee(school_id: int, payee_id: int):
        return ok(payees.get(school_id=school_id, payee_id=payee_id))

    @app.route("/api/schools/<int:school_id>/payees", methods=["POST"], endpoint="create_payee")
    def create_payee(school_id: int):
        return ok({"payee_id": payees.create(school_id=school_id, data=json_body())}, 201)

    @app.route("/api/schools/<int:school_id>/payees/<int:payee_id>", methods=["PUT"], endpoint="update_payee")
    def update_payee(school_id: int, payee_id: int):
        return ok(payees.update(school_id=school_id, payee_id=payee_id, changes=json_body()))

    @app.route("/api/schools/<int:school_id>/payees/<int:payee_id>", methods=["DELETE"], endpoint="delete_payee")
    def delete_payee(school_id: int, payee_id: int):
        payees.delete(school_id=school_id, payee_id=payee_id)
        return ok({"deleted": True})

    @app.route(
        "/api/schools/<int:school_id>/payees/<int:payee_id>/payments",
        methods=["GET"],
        endpoint="payee_payments",
    )
    def payee_payments(school_id: int, payee_id: int):
        return ok(payees.list_payments(school_id=school_id, payee_id=payee_id))

    @app.route(
        "/api/schools/<int:school_id>/payees/<int:payee_id>/payments",
        methods=["POST"],
        endpoint="create_payee_payment",
    )
    def create_payee_payment(school_id: int, payee_id: int):
        body = json_body()
        payment_id = payees.create_payment(
            school_id=school_id,
            payee_id=payee_id,
            amount=body.get("amount"),
            payment_date=body.get("payment_date"),
            academic_year_id=body.get("academic_year_id"),
            description=body.get("description"),
            reference_number=body.get("reference_number"),
            created_by=current_user_id(),
        )
        return ok({"payee_payment_id": payment_id}, 201)

    @app.route(
        "/api/schools/<int:school_id>/payee-payments/<int:payment_id>",
        methods=["DELETE"],
        endpoint="delete_payee_payment",
    )
    def delete_payee_payment(school_id: int, payment_id: int):
        payees.delete_payment(school_id=school_id, payee_payment_id=payment_id)
        return ok({"deleted": True})
