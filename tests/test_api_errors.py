"""HTTP tests for error responses: every failure is a JSON body."""

import sqlite3

import pytest

from config.exceptions import DatabaseError


class TestMalformedBodies:
    def test_outline_with_string_basic_info(self, lenient_client):
        response = lenient_client.post(
            "/api/generate/outline", json={"userId": "u1", "config": {"basicInfo": "oops"}},
        )
        assert response.status_code == 400
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {"error": "config.basicInfo must be an object"}

    @pytest.mark.parametrize("section", ["content", "writingStyle", "audience"])
    def test_outline_with_non_object_section(self, lenient_client, section):
        config = {"basicInfo": {"title": "Tide", "author": "Ada"}, section: 42}
        response = lenient_client.post("/api/generate/outline", json={"userId": "u1", "config": config})
        assert response.status_code == 400
        assert response.json() == {"error": f"config.{section} must be an object"}

    def test_patch_with_object_title(self, lenient_client, sample_book):
        response = lenient_client.patch(f"/api/books/{sample_book.id}", json={"title": {"a": 1}})
        assert response.status_code == 400
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {"error": "title must be a string"}


class TestUnexpectedErrors:
    def test_unhandled_exception_is_json_500(self, lenient_client, db, sample_book, monkeypatch):
        def broken(book_id):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(db, "get_book", broken)
        response = lenient_client.get(f"/api/books/{sample_book.id}")
        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {"error": "Internal server error", "details": "disk on fire"}

    def test_database_error_is_json_500(self, lenient_client, db, sample_book, monkeypatch):
        def locked(book_id):
            raise DatabaseError("Database operation failed: database is locked", {"error": "OperationalError"})

        monkeypatch.setattr(db, "get_book", locked)
        response = lenient_client.get(f"/api/books/{sample_book.id}")
        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Database operation failed: database is locked"
        assert "OperationalError" in data["details"]

    def test_sqlite_failure_surfaces_as_database_error(self, lenient_client, db, sample_book, monkeypatch):
        def failing_connect(*args, **kwargs):
            raise sqlite3.OperationalError("unable to open database file")

        monkeypatch.setattr(sqlite3, "connect", failing_connect)
        response = lenient_client.get(f"/api/books/{sample_book.id}")
        assert response.status_code == 500
        assert response.json()["error"] == "Database operation failed: unable to open database file"
