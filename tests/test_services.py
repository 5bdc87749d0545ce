import pytest

from notex_website.backend.domain import AuthError, NoteNotFound
from notex_website.backend.services import AuthService, Notebook, Storage


class TestStorage:
    def test_save_and_load(self, store):
        note = store.save("usr_1", None, "Title", "a <strong>b</strong>", ["x.pdf"])
        loaded = store.load("usr_1", note.id)
        assert loaded.to_dict() == note.to_dict()
        assert note.id.startswith("note_")
        assert loaded.attachments == ["x.pdf"]

    def test_content_is_stored_verbatim(self, store):
        content = "  <strong>spaced</strong>\n\n\ttabs  "
        note = store.save("usr_1", None, "T", content)
        assert store.load("usr_1", note.id).content == content

    def test_update_keeps_created_time(self, store):
        note = store.save("usr_1", None, "T", "old")
        updated = store.save("usr_1", note.id, "T2", "new", [])
        loaded = store.load("usr_1", note.id)
        assert loaded.created_time == note.created_time
        assert (loaded.title, loaded.content) == ("T2", "new")
        assert updated.updated_time >= note.updated_time

    def test_update_unknown_note(self, store):
        with pytest.raises(NoteNotFound):
            store.save("usr_1", "note_missing", "T", "c")

    def test_notes_are_scoped_to_user(self, store):
        note = store.save("usr_1", None, "T", "c")
        with pytest.raises(NoteNotFound):
            store.load("usr_2", note.id)
        assert store.list_notes("usr_2") == []
        assert store.delete_note("usr_2", note.id) is False

    def test_list_newest_first(self, store):
        first = store.save("usr_1", None, "first", "c")
        second = store.save("usr_1", None, "second", "c")
        assert [n.id for n in store.list_notes("usr_1")] == [second.id, first.id]

    def test_search_matches_title_or_visible_text(self, store):
        store.save("usr_1", None, "Groceries", "milk")
        store.save("usr_1", None, "Work", "call <strong>Alice</strong>")
        assert [n.title for n in store.list_notes("usr_1", "GROC")] == ["Groceries"]
        assert [n.title for n in store.list_notes("usr_1", "alice")] == ["Work"]
        assert store.list_notes("usr_1", "strong") == []
        assert len(store.list_notes("usr_1", "  ")) == 2

    def test_delete(self, store):
        note = store.save("usr_1", None, "T", "c")
        assert store.delete_note("usr_1", note.id) is True
        assert store.delete_note("usr_1", note.id) is False


class TestNotebook:
    def test_create_requires_title_and_content(self, store):
        notebook = Notebook(store)
        with pytest.raises(ValueError):
            notebook.create_note("usr_1", "  ", "content")
        with pytest.raises(ValueError):
            notebook.create_note("usr_1", "T", "")

    def test_create_strips_title_only(self, store):
        note = Notebook(store).create_note("usr_1", "  T  ", " body ")
        assert (note.title, note.content) == ("T", " body ")

    def test_partial_update(self, store):
        notebook = Notebook(store)
        note = notebook.create_note("usr_1", "T", "body", ["a.txt"])
        updated = notebook.update_note("usr_1", note.id, title="", content="new body")
        assert (updated.title, updated.content, updated.attachments) == ("T", "new body", ["a.txt"])


class TestAuthService:
    def test_register_and_login(self, auth):
        uid = auth.add_user("a@example.com", "pw")
        token = auth.login("a@example.com", "pw")
        assert auth.validate(token) == uid
        assert auth.validate(f"Bearer {token}") == uid

    def test_duplicate_email(self, auth):
        auth.add_user("a@example.com", "pw")
        with pytest.raises(AuthError):
            auth.add_user("a@example.com", "other")

    def test_bad_credentials(self, auth):
        auth.add_user("a@example.com", "pw")
        with pytest.raises(AuthError):
            auth.login("a@example.com", "wrong")
        with pytest.raises(AuthError):
            auth.login("nobody@example.com", "pw")

    @pytest.mark.parametrize("token", ["", "sess_unknown", "Bearer sess_unknown"])
    def test_invalid_token(self, auth, token):
        with pytest.raises(AuthError):
            auth.validate(token)

    def test_logout(self, auth):
        auth.add_user("a@example.com", "pw")
        token = auth.login("a@example.com", "pw")
        assert auth.logout(f"Bearer {token}") is True
        assert auth.logout(token) is False
        with pytest.raises(AuthError):
            auth.validate(token)

    def test_sessions_survive_restart(self, tmp_path):
        db = str(tmp_path / "users.db")
        first = AuthService(db)
        uid = first.add_user("a@example.com", "pw")
        token = first.login("a@example.com", "pw")
        assert AuthService(db).validate(token) == uid
