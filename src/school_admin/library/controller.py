from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import arg_bool, arg_int, arg_str, current_user_id, json_body, to_jsonable
from ..container import Container


def register(app: Flask, container: Container) -> None:
    catalog = container.library_catalog_service
    loans = container.library_loan_service

    def ok(data, status: int = 200):
        return jsonify(to_jsonable(data)), status

    # -------- Books --------
    @app.route("/api/schools/<int:school_id>/library/books", methods=["GET"], endpoint="library_books")
    def library_books(school_id: int):
        return ok(catalog.list_books(school_id=school_id, search=arg_str("search"), category=arg_str("category")))

    @app.route("/api/schools/<int:school_id>/library/books", methods=["POST"], endpoint="create_library_book")
    def create_library_book(school_id: int):
        book_id = catalog.create_book(school_id=school_id, data=json_body())
        return ok({"book_id": book_id}, 201)

    @app.route("/api/schools/<int:school_id>/library/books/<int:book_id>", methods=["GET"], endpoint="library_book")
    def library_book(school_id: int, book_id: int):
        return ok(catalog.get_book(school_id=school_id, book_id=book_id))

    @app.route(
        "/api/schools/<int:school_id>/library/books/<int:book_id>",
        methods=["PUT"],
        endpoint="update_library_book",
    )
    def update_library_book(school_id: int, book_id: int):
        return ok(catalog.update_book(school_id=school_id, book_id=book_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/library/books/<int:book_id>",
        methods=["DELETE"],
        endpoint="delete_library_book",
    )
    def delete_library_book(school_id: int, book_id: int):
        catalog.delete_book(school_id=school_id, book_id=book_id)
        return ok({"deleted": True})

    # -------- Copies --------
    @app.route(
        "/api/schools/<int:school_id>/library/books/<int:book_id>/copies",
        methods=["GET"],
        endpoint="library_copies",
    )
    def library_copies(school_id: int, book_id: int):
        return ok(
            catalog.list_copies(
                school_id=school_id,
                book_id=book_id,
                available_only=arg_bool("available", False),
            )
        )

    @app.route(
        "/api/schools/<int:school_id>/library/books/<int:book_id>/copies",
        methods=["POST"],
        endpoint="add_library_copies",
    )
    def add_library_copies(school_id: int, book_id: int):
        body = json_body()
        copies = catalog.add_copies(
            school_id=school_id,
            book_id=book_id,
            count=body.get("count", 1),
            purchase_date=body.get("purchase_date"),
            price=body.get("price"),
            condition_notes=body.get("condition_notes"),
        )
        return ok(copies, 201)

    @app.route("/api/schools/<int:school_id>/library/copies/<int:copy_id>", methods=["PUT"], endpoint="update_library_copy")
    def update_library_copy(school_id: int, copy_id: int):
        return ok(catalog.update_copy(school_id=school_id, copy_id=copy_id, changes=json_body()))

    @app.route(
        "/api/schools/<int:school_id>/library/copies/<int:copy_id>",
        methods=["DELETE"],
        endpoint="delete_library_copy",
    )
    def delete_library_copy(school_id: int, copy_id: int):
        catalog.delete_copy(school_id=school_id, copy_id=copy_id)
        return ok({"deleted": True})

    # -------- Loans --------
    @app.route("/api/schools/<int:school_id>/library/loans", methods=["GET"], endpoint="library_loans")
    def library_loans(school_id: int):
        return ok(
            loans.list_loans(
                school_id=school_id,
                status=arg_str("status"),
                student_id=arg_int("student_id"),
                search=arg_str("search"),
            )
        )

    @app.route("/api/schools/<int:school_id>/library/loans", methods=["POST"], endpoint="issue_library_book")
    def issue_library_book(school_id: int):
        body = json_body()
        result = loans.issue_book(
            school_id=school_id,
            copy_id=body.get("copy_id"),
            student_id=body.get("student_id"),
            due_date=body.get("due_date"),
            notes=body.get("notes"),
            issued_by=current_user_id(),
        )
        return ok(result, 201)

    @app.route(
        "/api/schools/<int:school_id>/library/loans/<int:loan_id>/return",
        methods=["POST"],
        endpoint="return_library_book",
    )
    def return_library_book(school_id: int, loan_id: int):
        body = json_body()
        return ok(
            loans.return_book(
                school_id=school_id,
                loan_id=loan_id,
                collected_amount=body.get("collected_amount"),
                returned_by=current_user_id(),
            )
        )

    @app.route(
        "/api/schools/<int:school_id>/library/loans/<int:loan_id>/lost",
        methods=["POST"],
        endpoint="mark_library_book_lost",
    )
    def mark_library_book_lost(school_id: int, loan_id: int):
        body = json_body()
        return ok(loans.mark_lost(school_id=school_id, loan_id=loan_id, processing_fee=body.get("processing_fee")))

    @app.route(
        "/api/schools/<int:school_id>/library/students/<int:student_id>/eligibility",
        methods=["GET"],
        endpoint="library_eligibility",
    )
    def library_eligibility(school_id: int, student_id: int):
        return ok(loans.eligibility(school_id=school_id, student_id=student_id))

    # -------- Fines --------
    @app.route(
        "/api/schools/<int:school_id>/library/students/<int:student_id>/fines",
        methods=["GET"],
        endpoint="library_unpaid_fines",
    )
    def library_unpaid_fines(school_id: int, student_id: int):
        return ok(loans.unpaid_fines(school_id=school_id, student_id=student_id))

    @app.route(
        "/api/schools/<int:school_id>/library/fines/<int:fine_id>/pay",
        methods=["POST"],
        endpoint="pay_library_fine",
    )
    def pay_library_fine(school_id: int, fine_id: int):
        return ok(loans.pay_fine(school_id=school_id, fine_id=fine_id))

    @app.route("/api/schools/<int:school_id>/library/fines/stats", methods=["GET"], endpoint="library_fine_stats")
    def library_fine_stats(school_id: int):
        return ok(loans.fine_stats(school_id=school_id))
