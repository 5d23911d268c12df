"""
Integration tests for API endpoints.
"""

import threading

import pytest

from sirened.storage import UserRepository

pytestmark = pytest.mark.asyncio


SCORES = {"enjoyment": 5, "writing": 4, "themes": 3, "characters": 4, "worldbuilding": 2}


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    async def test_health_check(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"] == {"database": "healthy", "rate_limiting": "disabled"}

    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "Sirened"

    async def test_request_id_echoed(self, client):
        response = await client.get("/api/v1/books", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"


class TestAuthEndpoints:
    """Tests for signup, login and the current user."""

    async def test_signup_and_me(self, client, reader):
        response = await client.get("/api/v1/auth/me", headers=reader["headers"])

        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "reader"
        assert data["display_name"] == "reader"
        assert data["is_admin"] is False
        assert "hashed_password" not in data

    async def test_user_lookup_runs_off_the_event_loop(self, client, reader, monkeypatch):
        original_get = UserRepository.get
        on_main_thread = []

        def recording_get(self, user_id):
            on_main_thread.append(threading.current_thread() is threading.main_thread())
            return original_get(self, user_id)

        monkeypatch.setattr(UserRepository, "get", recording_get)

        response = await client.get("/api/v1/auth/me", headers=reader["headers"])

        assert response.status_code == 200
        assert on_main_thread and not any(on_main_thread)

    async def test_duplicate_signup(self, client, reader):
        response = await client.post(
            "/api/v1/auth/signup",
            json={"email": "reader@example.com", "username": "someone", "password": "long-enough-pw"},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    async def test_signup_validation(self, client):
        response = await client.post(
            "/api/v1/auth/signup",
            json={"email": "not-an-email", "username": "x", "password": "short"},
        )
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_login_by_email(self, client, reader):
        response = await client.post(
            "/api/v1/auth/token",
            data={"username": "reader@example.com", "password": "correct-horse-battery"},
        )
        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"

    async def test_wrong_password(self, client, reader):
        response = await client.post("/api/v1/auth/token", data={"username": "reader", "password": "nope"})

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_missing_and_bad_tokens(self, client):
        assert (await client.get("/api/v1/auth/me")).status_code == 401
        bad = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer garbage"})
        assert bad.status_code == 401

    async def test_update_profile(self, client, reader):
        response = await client.patch(
            "/api/v1/auth/me",
            json={"bio": "Reads at night", "social_links": [{"platform": "mastodon", "url": "https://m.example/@r"}]},
            headers=reader["headers"],
        )

        assert response.status_code == 200
        assert response.json()["bio"] == "Reads at night"

        public = await client.get("/api/v1/users/reader")
        assert public.status_code == 200
        assert public.json()["social_links"][0]["platform"] == "mastodon"
        assert "email" not in public.json()

    async def test_change_password(self, client, reader):
        wrong = await client.patch(
            "/api/v1/auth/me",
            json={"current_password": "nope", "new_password": "another-long-pw"},
            headers=reader["headers"],
        )
        assert wrong.status_code == 400

        changed = await client.patch(
            "/api/v1/auth/me",
            json={"current_password": "correct-horse-battery", "new_password": "another-long-pw"},
            headers=reader["headers"],
        )
        assert changed.status_code == 200

        login = await client.post("/api/v1/auth/token", data={"username": "reader", "password": "another-long-pw"})
        assert login.status_code == 200

    async def test_unknown_user_profile(self, client):
        response = await client.get("/api/v1/users/ghost")
        assert response.status_code == 404


class TestAuthorEndpoints:
    async def test_author_profile_lifecycle(self, client, reader):
        missing = await client.get("/api/v1/authors/me", headers=reader["headers"])
        assert missing.status_code == 404

        saved = await client.put(
            "/api/v1/authors/me",
            json={"author_name": "R. Eader", "bio": "Writes too"},
            headers=reader["headers"],
        )
        assert saved.status_code == 200
        author = saved.json()

        public = await client.get(f"/api/v1/authors/{author['id']}")
        assert public.json()["author_name"] == "R. Eader"

    async def test_book_submission_creates_author(self, client, reader, book):
        response = await client.get("/api/v1/authors/me", headers=reader["headers"])

        assert response.status_code == 200
        assert response.json()["id"] == book["author_id"]


class TestBooksEndpoints:
    """Tests for book CRUD endpoints."""

    async def test_create_book(self, book, genre):
        assert book["title"] == "The Hollow Tide"
        assert book["genres"] == [genre.id]
        assert [link["retailer"] for link in book["referral_links"]] == ["Amazon", "Custom"]
        assert book["referral_links"][0]["domain"] == "amazon.com"
        assert "favicon_url" in book["referral_links"][1]

    async def test_create_requires_auth(self, client, sample_book_payload):
        response = await client.post("/api/v1/books", json=sample_book_payload)
        assert response.status_code == 401

    async def test_wizard_rejects_incomplete_submission(self, client, reader, sample_book_payload):
        payload = dict(sample_book_payload, formats=[], genres=[])

        response = await client.post("/api/v1/books", json=payload, headers=reader["headers"])

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert set(data["detail"]) == {"Formats", "Genres"}

    async def test_wizard_step_check(self, client):
        response = await client.post(
            "/api/v1/books/wizard/validate",
            json={"step": 3, "current_step": 0, "form": {"title": "x", "description": "y"}},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Formats"
        assert data["can_proceed"] is False
        assert data["can_skip_to"] is True

    @pytest.mark.parametrize("step,form,message", [
        (6, {"page_count": "-3"}, "Page count must be positive"),
        (3, {"formats": 5}, "Formats must be a list"),
        (7, {"referral_links": 3}, "Referral links must be a list"),
    ])
    async def test_wizard_step_check_malformed_form(self, client, step, form, message):
        response = await client.post("/api/v1/books/wizard/validate", json={"step": step, "form": form})

        assert response.status_code == 200
        assert response.json()["errors"] == [message]
        assert response.json()["can_proceed"] is False

    async def test_get_book(self, client, book):
        response = await client.get(f"/api/v1/books/{book['id']}")

        assert response.status_code == 200
        assert response.json()["page_count"] == 320

    async def test_get_nonexistent_book(self, client):
        response = await client.get("/api/v1/books/9999")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    async def test_list_and_search(self, client, book):
        response = await client.get("/api/v1/books", params={"search": "hollow"})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["has_more"] is False
        assert data["books"][0]["id"] == book["id"]

        empty = await client.get("/api/v1/books", params={"search": "nothing"})
        assert empty.json()["total"] == 0

    async def test_update_by_owner(self, client, reader, book):
        response = await client.patch(
            f"/api/v1/books/{book['id']}",
            json={"title": "Salt Choir"},
            headers=reader["headers"],
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Salt Choir"

    async def test_update_by_stranger_forbidden(self, client, other_reader, book):
        response = await client.patch(
            f"/api/v1/books/{book['id']}",
            json={"title": "Stolen"},
            headers=other_reader["headers"],
        )

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    async def test_update_by_admin(self, client, admin, book):
        response = await client.patch(
            f"/api/v1/books/{book['id']}",
            json={"description": "Edited by staff"},
            headers=admin["headers"],
        )
        assert response.status_code == 200

    async def test_update_rejects_bare_links(self, client, reader, book):
        response = await client.patch(
            f"/api/v1/books/{book['id']}",
            json={"referral_links": [{"url": "amazon.com/dp/1"}]},
            headers=reader["headers"],
        )
        assert response.status_code == 422

    async def test_delete_book(self, client, reader, book):
        response = await client.delete(f"/api/v1/books/{book['id']}", headers=reader["headers"])
        assert response.status_code == 204

        gone = await client.get(f"/api/v1/books/{book['id']}")
        assert gone.status_code == 404

    async def test_set_taxonomies(self, client, container, reader, book, genre):
        horror = container.taxonomy_repository.create(name="Horror", type="genre")

        response = await client.put(
            f"/api/v1/books/{book['id']}/taxonomies",
            json={"taxonomy_ids": [horror.id, genre.id]},
            headers=reader["headers"],
        )

        assert response.status_code == 200
        assert response.json()["genres"] == [horror.id, genre.id]

        tagged = await client.get("/api/v1/books", params={"taxonomy_id": horror.id})
        assert tagged.json()["total"] == 1

    async def test_move_referral_link(self, client, reader, book):
        response = await client.post(
            f"/api/v1/books/{book['id']}/referral-links/move",
            json={"from_index": 1, "to_index": 0},
            headers=reader["headers"],
        )

        assert response.status_code == 200
        assert [link["retailer"] for link in response.json()["referral_links"]] == ["Custom", "Amazon"]

        out_of_range = await client.post(
            f"/api/v1/books/{book['id']}/referral-links/move",
            json={"from_index": 0, "to_index": 7},
            headers=reader["headers"],
        )
        assert out_of_range.status_code == 400


class TestReadingStatusEndpoints:
    async def test_wishlist_toggle(self, client, reader, book):
        added = await client.post(f"/api/v1/books/{book['id']}/wishlist", headers=reader["headers"])
        assert added.json()["is_wishlisted"] is True

        wishlist = await client.get("/api/v1/books/wishlist", headers=reader["headers"])
        assert [b["id"] for b in wishlist.json()] == [book["id"]]

        removed = await client.post(f"/api/v1/books/{book['id']}/wishlist", headers=reader["headers"])
        assert removed.json()["is_wishlisted"] is False

    async def test_mark_completed(self, client, reader, book):
        response = await client.post(f"/api/v1/books/{book['id']}/complete", headers=reader["headers"])

        assert response.status_code == 200
        assert response.json()["is_completed"] is True
        assert response.json()["completed_at"] is not None


class TestRatingEndpoints:
    """Tests for ratings, preferences and compatibility."""

    async def test_rate_then_update(self, client, reader, book):
        payload = dict(SCORES, book_id=book["id"], review="Haunting")

        created = await client.post("/api/v1/ratings", json=payload, headers=reader["headers"])
        assert created.status_code == 201
        assert created.json()["weighted_rating"] == 3.99

        updated = await client.post(
            "/api/v1/ratings",
            json=dict(payload, enjoyment=1),
            headers=reader["headers"],
        )
        assert updated.status_code == 200
        assert updated.json()["id"] == created.json()["id"]

        ratings = await client.get(f"/api/v1/books/{book['id']}/ratings")
        assert len(ratings.json()) == 1
        assert ratings.json()[0]["username"] == "reader"
        assert ratings.json()[0]["enjoyment"] == 1

    async def test_author_features_rating(self, client, reader, other_reader, book):
        rating = (await client.post(
            "/api/v1/ratings", json=dict(SCORES, book_id=book["id"]), headers=other_reader["headers"]
        )).json()

        denied = await client.post(
            f"/api/v1/ratings/{rating['id']}/feature", json={"featured": True}, headers=other_reader["headers"]
        )
        assert denied.status_code == 403

        featured = await client.post(
            f"/api/v1/ratings/{rating['id']}/feature", json={"featured": True}, headers=reader["headers"]
        )
        assert featured.status_code == 200
        assert featured.json()["featured"] is True

        missing = await client.post("/api/v1/ratings/9999/feature", json={}, headers=reader["headers"])
        assert missing.status_code == 404

    async def test_report_and_moderation(self, client, reader, other_reader, admin, book):
        rating = (await client.post(
            "/api/v1/ratings", json=dict(SCORES, book_id=book["id"]), headers=other_reader["headers"]
        )).json()

        reported = await client.post(f"/api/v1/ratings/{rating['id']}/report", headers=reader["headers"])
        assert reported.json()["report_status"] == "pending"

        own = await client.post(f"/api/v1/ratings/{rating['id']}/report", headers=other_reader["headers"])
        assert own.status_code == 400

        queue = await client.get("/api/v1/ratings/admin/reported", params={"status": "pending"}, headers=admin["headers"])
        assert [r["id"] for r in queue.json()] == [rating["id"]]
        assert (await client.get("/api/v1/ratings/admin/reported", headers=reader["headers"])).status_code == 403

        settled = await client.patch(
            f"/api/v1/ratings/{rating['id']}/report",
            json={"report_status": "approved"},
            headers=admin["headers"],
        )
        assert settled.json()["report_status"] == "approved"
        assert (await client.get(f"/api/v1/books/{book['id']}/ratings")).json() == []

    async def test_rating_marks_completed(self, client, reader, book):
        await client.post("/api/v1/ratings", json=dict(SCORES, book_id=book["id"]), headers=reader["headers"])

        status = await client.get(f"/api/v1/books/{book['id']}/reading-status", headers=reader["headers"])
        assert status.json()["is_completed"] is True

    async def test_scores_out_of_range(self, client, reader, book):
        response = await client.post(
            "/api/v1/ratings",
            json=dict(SCORES, book_id=book["id"], writing=6),
            headers=reader["headers"],
        )
        assert response.status_code == 422

    async def test_rating_unknown_book(self, client, reader):
        response = await client.post("/api/v1/ratings", json=dict(SCORES, book_id=9999), headers=reader["headers"])
        assert response.status_code == 404

    async def test_my_rating_and_summary(self, client, reader, book):
        none_yet = await client.get(f"/api/v1/books/{book['id']}/ratings/me", headers=reader["headers"])
        assert none_yet.status_code == 200
        assert none_yet.json() is None

        empty = await client.get(f"/api/v1/books/{book['id']}/ratings/summary")
        assert empty.json()["count"] == 0
        assert empty.json()["overall"] == 0.0

        await client.post("/api/v1/ratings", json=dict(SCORES, book_id=book["id"]), headers=reader["headers"])

        mine = await client.get(f"/api/v1/books/{book['id']}/ratings/me", headers=reader["headers"])
        assert mine.json()["writing"] == 4

        summary = await client.get(f"/api/v1/books/{book['id']}/ratings/summary")
        assert summary.json()["count"] == 1
        assert summary.json()["averages"]["enjoyment"] == 5.0
        assert summary.json()["overall"] == 3.99

    async def test_delete_rating(self, client, reader, book):
        await client.post("/api/v1/ratings", json=dict(SCORES, book_id=book["id"]), headers=reader["headers"])

        assert (await client.delete(f"/api/v1/ratings/{book['id']}", headers=reader["headers"])).status_code == 204
        assert (await client.delete(f"/api/v1/ratings/{book['id']}", headers=reader["headers"])).status_code == 404

    async def test_default_preferences(self, client, reader):
        response = await client.get("/api/v1/ratings/preferences", headers=reader["headers"])

        assert response.status_code == 200
        data = response.json()
        assert data["criteria_order"] == ["enjoyment", "writing", "themes", "characters", "worldbuilding"]
        assert data["weights"]["enjoyment"] == 0.35
        assert data["auto_adjust"] is True

    async def test_save_order_completes_onboarding(self, client, reader):
        order = ["worldbuilding", "characters", "themes", "writing", "enjoyment"]

        response = await client.put(
            "/api/v1/ratings/preferences",
            json={"criteria_order": order},
            headers=reader["headers"],
        )

        assert response.status_code == 200
        assert response.json()["weights"]["worldbuilding"] == 0.35

        me = await client.get("/api/v1/auth/me", headers=reader["headers"])
        assert me.json()["has_completed_onboarding"] is True

    async def test_empty_preferences_update(self, client, reader):
        response = await client.put("/api/v1/ratings/preferences", json={}, headers=reader["headers"])
        assert response.status_code == 400

    async def test_manual_weights_must_sum_to_one(self, client, reader):
        weights = {c: 0.3 for c in SCORES}

        response = await client.put(
            "/api/v1/ratings/preferences",
            json={"weights": weights, "auto_adjust": False},
            headers=reader["headers"],
        )
        assert response.status_code == 400

    async def test_rebalance(self, client, reader):
        response = await client.post(
            "/api/v1/ratings/preferences/rebalance",
            json={"criterion": "enjoyment", "value": 0.5},
            headers=reader["headers"],
        )

        assert response.status_code == 200
        weights = response.json()["weights"]
        assert weights["enjoyment"] == 0.5
        assert abs(sum(weights.values()) - 1.0) < 1e-6

    async def test_rebalance_unknown_criterion(self, client, reader):
        response = await client.post(
            "/api/v1/ratings/preferences/rebalance",
            json={"criterion": "pacing", "value": 0.5},
            headers=reader["headers"],
        )
        assert response.status_code == 400

    async def test_compatibility(self, client, reader, other_reader):
        same = await client.get("/api/v1/ratings/compatibility/otherreader", headers=reader["headers"])

        assert same.status_code == 200
        assert same.json()["label"] == "Overwhelmingly Compatible"
        assert same.json()["score"] == 3

        await client.put(
            "/api/v1/ratings/preferences",
            json={"criteria_order": ["worldbuilding", "characters", "themes", "writing", "enjoyment"]},
            headers=other_reader["headers"],
        )
        reversed_ = await client.get("/api/v1/ratings/compatibility/otherreader", headers=reader["headers"])
        assert reversed_.json()["label"] == "Mixed"

    async def test_compatibility_unknown_user(self, client, reader):
        response = await client.get("/api/v1/ratings/compatibility/ghost", headers=reader["headers"])
        assert response.status_code == 404


class TestShelfEndpoints:
    """Tests for shelves, shelf books and public shelves."""

    async def _shelf(self, client, user, title="Favourites") -> dict:
        response = await client.post("/api/v1/shelves", json={"title": title}, headers=user["headers"])
        assert response.status_code == 201
        return response.json()

    async def test_create_and_reorder(self, client, reader):
        first = await self._shelf(client, reader)
        second = await self._shelf(client, reader, "Summer")
        assert (first["rank"], second["rank"]) == (0, 1)

        response = await client.put(
            "/api/v1/shelves/ranks",
            json=[{"id": first["id"], "rank": 1}, {"id": second["id"], "rank": 0}],
            headers=reader["headers"],
        )

        assert response.status_code == 200
        assert [s["title"] for s in response.json()] == ["Summer", "Favourites"]

    async def test_reorder_foreign_shelf(self, client, reader, other_reader):
        theirs = await self._shelf(client, other_reader)

        response = await client.put(
            "/api/v1/shelves/ranks",
            json=[{"id": theirs["id"], "rank": 0}],
            headers=reader["headers"],
        )
        assert response.status_code == 403

        peek = await client.get(f"/api/v1/shelves/{theirs['id']}", headers=reader["headers"])
        assert peek.status_code == 403

    async def test_books_on_shelf(self, client, reader, book):
        shelf = await self._shelf(client, reader)
        url = f"/api/v1/shelves/{shelf['id']}/books"

        added = await client.post(url, json={"book_id": book["id"]}, headers=reader["headers"])
        assert added.status_code == 201
        assert added.json()["title"] == "The Hollow Tide"

        duplicate = await client.post(url, json={"book_id": book["id"]}, headers=reader["headers"])
        assert duplicate.status_code == 409

        listed = await client.get(f"/api/v1/shelves/{shelf['id']}", headers=reader["headers"])
        assert listed.json()["book_count"] == 1

        removed = await client.delete(f"{url}/{book['id']}", headers=reader["headers"])
        assert removed.status_code == 204

    async def test_public_shelf(self, client, reader, book):
        shelf = await self._shelf(client, reader)
        await client.post(f"/api/v1/shelves/{shelf['id']}/books", json={"book_id": book["id"]}, headers=reader["headers"])

        private = await client.get("/api/v1/shelves/public/reader/Favourites")
        assert private.status_code == 404

        shared = await client.put(
            f"/api/v1/shelves/{shelf['id']}/share",
            json={"is_shared": True},
            headers=reader["headers"],
        )
        assert shared.json()["is_shared"] is True

        public = await client.get("/api/v1/shelves/public/reader/Favourites")
        assert public.status_code == 200
        assert [b["book_id"] for b in public.json()["books"]] == [book["id"]]

    async def test_delete_shelf(self, client, reader):
        shelf = await self._shelf(client, reader)

        assert (await client.delete(f"/api/v1/shelves/{shelf['id']}", headers=reader["headers"])).status_code == 204
        assert (await client.get("/api/v1/shelves", headers=reader["headers"])).json() == []


class TestNoteEndpoints:
    async def test_note_lifecycle(self, client, reader, other_reader, book):
        created = await client.post(
            "/api/v1/notes",
            json={"content": "Reread chapter 3", "book_id": book["id"]},
            headers=reader["headers"],
        )
        assert created.status_code == 201
        note = created.json()
        assert note["type"] == "book"

        listed = await client.get("/api/v1/notes", params={"book_id": book["id"]}, headers=reader["headers"])
        assert [n["id"] for n in listed.json()] == [note["id"]]

        hijack = await client.patch(
            f"/api/v1/notes/{note['id']}",
            json={"content": "Mine now"},
            headers=other_reader["headers"],
        )
        assert hijack.status_code == 403

        edited = await client.patch(f"/api/v1/notes/{note['id']}", json={"content": "Chapter 4"}, headers=reader["headers"])
        assert edited.json()["content"] == "Chapter 4"

        assert (await client.delete(f"/api/v1/notes/{note['id']}", headers=reader["headers"])).status_code == 204

    async def test_note_needs_one_target(self, client, reader):
        response = await client.post("/api/v1/notes", json={"content": "Floating"}, headers=reader["headers"])
        assert response.status_code == 400


class TestFeedbackEndpoints:
    """Tests for ticket submission, lookup and the admin board."""

    TICKET = {
        "type": "bug_report",
        "title": "Crash on save",
        "description": "The app closes when I save a shelf.",
    }

    async def test_anonymous_ticket_lookup(self, client):
        created = await client.post("/api/v1/feedback", json=self.TICKET)
        assert created.status_code == 201
        ticket = created.json()
        assert ticket["user_id"] is None
        assert ticket["status"] == "new"

        lookup = await client.get(f"/api/v1/feedback/lookup/{ticket['ticket_number'].lower()}")
        assert lookup.status_code == 200
        assert set(lookup.json()) == {"ticket_number", "type", "status", "created_at"}

    async def test_user_ticket_privacy(self, client, reader, other_reader, admin):
        created = await client.post("/api/v1/feedback", json=self.TICKET, headers=reader["headers"])
        number = created.json()["ticket_number"]

        mine = await client.get("/api/v1/feedback/mine", headers=reader["headers"])
        assert [t["ticket_number"] for t in mine.json()] == [number]

        owner = await client.get(f"/api/v1/feedback/lookup/{number}", headers=reader["headers"])
        assert owner.json()["description"] == self.TICKET["description"]

        stranger = await client.get(f"/api/v1/feedback/lookup/{number}", headers=other_reader["headers"])
        assert stranger.status_code == 403

        anonymous = await client.get(f"/api/v1/feedback/lookup/{number}")
        assert anonymous.status_code == 403

        staff = await client.get(f"/api/v1/feedback/lookup/{number}", headers=admin["headers"])
        assert staff.status_code == 200

    async def test_user_agent_recorded_as_device_info(self, client):
        response = await client.post("/api/v1/feedback", json=self.TICKET, headers={"User-Agent": "SirenedReader/2.1"})
        assert response.json()["device_info"] == {"user_agent": "SirenedReader/2.1"}

        explicit = await client.post(
            "/api/v1/feedback", json=dict(self.TICKET, device_info={"os": "iOS 17"}), headers={"User-Agent": "x"}
        )
        assert explicit.json()["device_info"] == {"os": "iOS 17"}

    async def test_short_description_rejected(self, client):
        response = await client.post("/api/v1/feedback", json=dict(self.TICKET, description="short"))
        assert response.status_code == 422

    async def test_admin_only(self, client, reader):
        response = await client.get("/api/v1/feedback/admin/board", headers=reader["headers"])

        assert response.status_code == 403
        assert response.json()["error"] == "Admin access required"

    async def test_board_and_moves(self, client, admin):
        ticket = (await client.post("/api/v1/feedback", json=self.TICKET)).json()

        board = await client.get("/api/v1/feedback/admin/board", headers=admin["headers"])
        columns = {c["status"]: c["tickets"] for c in board.json()["columns"]}
        assert list(columns) == ["new", "in_progress", "resolved", "closed"]
        assert [t["id"] for t in columns["new"]] == [ticket["id"]]

        moved = await client.post(
            "/api/v1/feedback/admin/board/move",
            json={"ticket_id": ticket["id"], "over_id": "container-resolved"},
            headers=admin["headers"],
        )
        assert moved.status_code == 200
        data = moved.json()
        assert (data["from_status"], data["to_status"], data["changed"]) == ("new", "resolved", True)
        assert data["ticket"]["resolved_at"] is not None

        same_column = await client.post(
            "/api/v1/feedback/admin/board/move",
            json={"ticket_id": ticket["id"], "over_id": "droppable-resolved"},
            headers=admin["headers"],
        )
        assert same_column.json()["changed"] is False

    async def test_admin_ticket_management(self, client, admin):
        created = await client.post(
            "/api/v1/feedback/admin/tickets",
            json=dict(self.TICKET, type="feature_request", status="in_progress", priority=3),
            headers=admin["headers"],
        )
        assert created.status_code == 201
        ticket = created.json()

        filtered = await client.get(
            "/api/v1/feedback/admin/tickets",
            params={"status": "in_progress"},
            headers=admin["headers"],
        )
        assert [t["id"] for t in filtered.json()] == [ticket["id"]]

        updated = await client.patch(
            f"/api/v1/feedback/admin/tickets/{ticket['id']}",
            json={"status": "closed", "admin_notes": "Shipped"},
            headers=admin["headers"],
        )
        assert updated.json()["status"] == "closed"
        assert updated.json()["admin_notes"] == "Shipped"

    async def test_admin_can_unassign_and_clear_notes(self, client, admin):
        ticket = (await client.post("/api/v1/feedback", json=self.TICKET)).json()
        url = f"/api/v1/feedback/admin/tickets/{ticket['id']}"

        assigned = await client.patch(
            url, json={"assigned_to": admin["user"]["id"], "admin_notes": "Mine"}, headers=admin["headers"]
        )
        assert assigned.json()["assigned_to"] == admin["user"]["id"]

        cleared = await client.patch(url, json={"assigned_to": None, "admin_notes": None}, headers=admin["headers"])

        assert cleared.status_code == 200
        assert cleared.json()["assigned_to"] is None
        assert cleared.json()["admin_notes"] is None
        assert cleared.json()["status"] == "new"


class TestGenreEndpoints:
    """Tests for taxonomy management."""

    async def test_public_listing(self, client, genre):
        response = await client.get("/api/v1/genres", params={"type": "genre"})

        assert response.status_code == 200
        assert [t["name"] for t in response.json()] == ["Fantasy"]

    async def test_create_is_admin_only(self, client, reader, admin, genre):
        payload = {"name": "Cozy Fantasy", "type": "subgenre", "parent_id": genre.id}

        assert (await client.post("/api/v1/genres", json=payload, headers=reader["headers"])).status_code == 403

        created = await client.post("/api/v1/genres", json=payload, headers=admin["headers"])
        assert created.status_code == 201

        subgenres = await client.get("/api/v1/genres", params={"parent_id": genre.id})
        assert [t["name"] for t in subgenres.json()] == ["Cozy Fantasy"]

    async def test_import(self, client, admin):
        response = await client.post(
            "/api/v1/genres/import",
            json={"items": [{"name": "Romance"}, {"name": ""}, {"name": "Found family", "type": "trope"}]},
            headers=admin["headers"],
        )

        assert response.status_code == 200
        data = response.json()
        assert (data["imported"], data["failed"]) == (2, 1)
        assert data["results"][1]["error"] == "Name is required"

    async def test_update_and_soft_delete(self, client, admin, genre):
        renamed = await client.patch(
            f"/api/v1/genres/{genre.id}",
            json={"description": "Magic and myth"},
            headers=admin["headers"],
        )
        assert renamed.json()["description"] == "Magic and myth"

        assert (await client.delete(f"/api/v1/genres/{genre.id}", headers=admin["headers"])).status_code == 204
        assert (await client.get(f"/api/v1/genres/{genre.id}")).status_code == 404


class TestGenreViewEndpoints:
    """Tests for genre views and their book feeds."""

    async def _view(self, client, user, genre) -> dict:
        created = await client.post("/api/v1/genre-views", json={"name": "Cozy", "is_default": True}, headers=user["headers"])
        assert created.status_code == 201
        view = created.json()

        taxonomies = await client.put(
            f"/api/v1/genre-views/{view['id']}/taxonomies",
            json={"taxonomy_ids": [genre.id]},
            headers=user["headers"],
        )
        assert taxonomies.status_code == 200
        return view

    async def test_view_books(self, client, reader, book, genre):
        view = await self._view(client, reader, genre)

        response = await client.get(f"/api/v1/genre-views/{view['id']}/books", headers=reader["headers"])

        assert response.status_code == 200
        data = response.json()
        assert [b["id"] for b in data["books"]] == [book["id"]]
        assert (data["candidates"], data["filtered_out"]) == (1, 0)

    async def test_blocks_hide_books(self, client, reader, book, genre):
        view = await self._view(client, reader, genre)
        await client.post(
            "/api/v1/blocks",
            json={"block_type": "author", "block_id": book["author_id"]},
            headers=reader["headers"],
        )

        response = await client.get(f"/api/v1/genre-views/{view['id']}/books", headers=reader["headers"])

        assert response.json()["books"] == []
        assert response.json()["filtered_out"] == 1

    async def test_view_taxonomies(self, client, reader, genre):
        view = await self._view(client, reader, genre)

        response = await client.get(f"/api/v1/genre-views/{view['id']}/taxonomies", headers=reader["headers"])
        assert response.json() == [{"taxonomy_id": genre.id, "type": "genre", "rank": 0, "name": "Fantasy"}]

    async def test_single_default(self, client, reader, genre):
        first = await self._view(client, reader, genre)
        second = await client.post("/api/v1/genre-views", json={"name": "Dark", "is_default": True}, headers=reader["headers"])

        views = (await client.get("/api/v1/genre-views", headers=reader["headers"])).json()
        defaults = [v["id"] for v in views if v["is_default"]]
        assert defaults == [second.json()["id"]]
        assert first["id"] not in defaults

    async def test_foreign_view(self, client, reader, other_reader, genre):
        view = await self._view(client, other_reader, genre)

        response = await client.get(f"/api/v1/genre-views/{view['id']}", headers=reader["headers"])
        assert response.status_code == 403


class TestBlockEndpoints:
    async def test_block_lifecycle(self, client, reader):
        payload = {"block_type": "publisher", "block_id": 4, "block_name": "Grim House"}

        created = await client.post("/api/v1/blocks", json=payload, headers=reader["headers"])
        assert created.status_code == 201
        block = created.json()

        assert (await client.post("/api/v1/blocks", json=payload, headers=reader["headers"])).status_code == 409

        listed = await client.get("/api/v1/blocks", headers=reader["headers"])
        assert [b["block_name"] for b in listed.json()] == ["Grim House"]

        assert (await client.delete(f"/api/v1/blocks/{block['id']}", headers=reader["headers"])).status_code == 204
        assert (await client.delete(f"/api/v1/blocks/{block['id']}", headers=reader["headers"])).status_code == 404

    async def test_invalid_block_type(self, client, reader):
        response = await client.post(
            "/api/v1/blocks",
            json={"block_type": "series", "block_id": 1},
            headers=reader["headers"],
        )
        assert response.status_code == 422


class TestPublisherEndpoints:
    """Tests for publishers and publisher blocks."""

    async def test_admin_only(self, client, reader):
        response = await client.post("/api/v1/publishers", json={"name": "Grim House"}, headers=reader["headers"])
        assert response.status_code == 403

    async def test_publisher_lifecycle(self, client, admin, book):
        created = await client.post("/api/v1/publishers", json={"name": "Grim House"}, headers=admin["headers"])
        assert created.status_code == 201
        publisher = created.json()

        linked = await client.post(
            f"/api/v1/publishers/{publisher['id']}/authors",
            json={"author_id": book["author_id"]},
            headers=admin["headers"],
        )
        assert linked.json()["author_ids"] == [book["author_id"]]

        fetched = await client.get(f"/api/v1/publishers/{publisher['id']}")
        assert fetched.json()["author_ids"] == [book["author_id"]]

        url = f"/api/v1/publishers/{publisher['id']}/authors/{book['author_id']}"
        assert (await client.delete(url, headers=admin["headers"])).status_code == 204
        assert (await client.delete(url, headers=admin["headers"])).status_code == 404

    async def test_unknown_author(self, client, admin):
        publisher = (await client.post("/api/v1/publishers", json={"name": "Grim House"}, headers=admin["headers"])).json()

        response = await client.post(
            f"/api/v1/publishers/{publisher['id']}/authors",
            json={"author_id": 9999},
            headers=admin["headers"],
        )
        assert response.status_code == 404

    async def test_publisher_block_hides_view_books(self, client, admin, other_reader, book, genre):
        publisher = (await client.post("/api/v1/publishers", json={"name": "Grim House"}, headers=admin["headers"])).json()
        await client.post(
            f"/api/v1/publishers/{publisher['id']}/authors",
            json={"author_id": book["author_id"]},
            headers=admin["headers"],
        )

        view = (await client.post("/api/v1/genre-views", json={"name": "Cozy"}, headers=other_reader["headers"])).json()
        await client.put(
            f"/api/v1/genre-views/{view['id']}/taxonomies",
            json={"taxonomy_ids": [genre.id]},
            headers=other_reader["headers"],
        )
        url = f"/api/v1/genre-views/{view['id']}/books"
        assert [b["id"] for b in (await client.get(url, headers=other_reader["headers"])).json()["books"]] == [book["id"]]

        await client.post(
            "/api/v1/blocks",
            json={"block_type": "publisher", "block_id": publisher["id"]},
            headers=other_reader["headers"],
        )

        response = await client.get(url, headers=other_reader["headers"])
        assert response.json()["books"] == []
        assert response.json()["filtered_out"] == 1
