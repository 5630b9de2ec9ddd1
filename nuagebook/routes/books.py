"""Book catalog, content editor and wizard API.

Routes (admin only):
    /api/books                               list / create
    /api/books/<id>                          get / patch / delete
    /api/books/<id>/content-export|import    content config transfer
    /api/books/<id>/elements/<element_id>    editor geometry operations
    /api/books/<id>/render-pages             headless page previews
    /api/books/<id>/avatar-combinations      generated wizard combinations
    /api/books/<id>/avatar-mappings          export / import mappings
    /api/books/<id>/resolve-texts            texts with conditional segments resolved
    /api/books/check-import                  validate stored IDML / EPUB / fonts
    /api/books/import-storyboard             build a content config from EPUB + IDML
"""
from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify, request

from nuagebook.routes.api_helpers import admin_required, json_body, no_content
from nuagebook.services import (
    books_service,
    conditional_text,
    content_layout,
    page_renderer,
    storyboard_import,
    wizard_service,
)
from nuagebook.utils.errors import ValidationError
from nuagebook.utils.logging import get_logger

bp = Blueprint("books_api", __name__, url_prefix="/api/books")
LOG = get_logger("routes.books")


@bp.route("", methods=["GET"])
@admin_required
def list_books():
    return jsonify(books_service.list_books())


@bp.route("", methods=["POST"])
@admin_required
def create_book():
    return jsonify(books_service.create_book(json_body())), 201


@bp.route("/check-import", methods=["POST"])
@admin_required
def check_import():
    payload = json_body()
    fonts = payload.get("fonts")
    result = storyboard_import.check_import(
        payload.get("idmlPath"), payload.get("epubPath"), fonts if isinstance(fonts, list) else None,
    )
    return jsonify(result)


@bp.route("/import-storyboard", methods=["POST"])
@admin_required
def import_storyboard():
    payload = json_body()
    fonts = payload.get("fonts")
    result = storyboard_import.import_storyboard(
        payload.get("bookId"),
        payload.get("epubPath"),
        payload.get("idmlPath"),
        fonts if isinstance(fonts, list) else None,
    )
    return jsonify(result)


@bp.route("/<book_id>", methods=["GET"])
@admin_required
def get_book(book_id: str):
    return jsonify(books_service.get_book(book_id))


@bp.route("/<book_id>", methods=["PATCH"])
@admin_required
def update_book(book_id: str):
    return jsonify(books_service.update_book(book_id, json_body()))


@bp.route("/<book_id>", methods=["DELETE"])
@admin_required
def delete_book(book_id: str):
    books_service.delete_book(book_id)
    return no_content()


@bp.route("/<book_id>/content-export", methods=["GET"])
@admin_required
def export_content(book_id: str):
    return jsonify(books_service.export_content(book_id))


@bp.route("/<book_id>/content-import", methods=["POST"])
@admin_required
def import_content(book_id: str):
    return jsonify(books_service.import_content(book_id, json_body()))


@bp.route("/<book_id>/elements/<element_id>", methods=["PATCH"])
@admin_required
def update_element(book_id: str, element_id: str):
    config = content_layout.apply_element_operation(book_id, element_id, json_body())
    return jsonify({"bookId": book_id, "contentConfig": config})


@bp.route("/<book_id>/render-pages", methods=["POST"])
@admin_required
def render_pages(book_id: str):
    payload = json_body()
    result = page_renderer.render_book_pages(book_id, payload.get("childName"))
    return jsonify(result)


@bp.route("/<book_id>/resolve-texts", methods=["POST"])
@admin_required
def resolve_texts(book_id: str):
    book = books_service.get_book(book_id)
    selections = json_body().get("selections")
    if selections is not None and not isinstance(selections, dict):
        raise ValidationError("invalid_selections", "selections must be an object")
    texts = conditional_text.resolve_content_texts(book.get("contentConfig") or {}, selections)
    return jsonify({"bookId": book_id, "texts": texts})


@bp.route("/<book_id>/avatar-combinations", methods=["GET"])
@admin_required
def avatar_combinations(book_id: str):
    result = wizard_service.combinations_for_book(book_id, request.args.get("tabId"))
    return jsonify(result.to_dict())


@bp.route("/<book_id>/avatar-mappings", methods=["GET"])
@admin_required
def export_avatar_mappings(book_id: str):
    return jsonify(wizard_service.build_avatar_mappings_export(book_id))


@bp.route("/<book_id>/avatar-mappings", methods=["POST"])
@admin_required
def import_avatar_mappings(book_id: str):
    return jsonify(wizard_service.import_avatar_mappings(book_id, json_body()))


def register_books_api(app: Any) -> None:
    if not getattr(app, "_nb_books_bp", None):
        app.register_blueprint(bp)
        setattr(app, "_nb_books_bp", bp)


__all__ = ["register_books_api", "bp"]
