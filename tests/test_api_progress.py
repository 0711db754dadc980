import pytest

PROGRESS = "/api/v1/progress"


@pytest.fixture
def article_id(seeded):
    return seeded["fr-article-14"]


def me(client, user):
    return client.get("/api/v1/auth/me", headers=user["headers"]).json()["data"]["user"]


def test_progress_requires_authentication(client, article_id):
    assert client.get(f"{PROGRESS}/overview").status_code == 401
    assert client.post(f"{PROGRESS}/{article_id}/start").status_code == 401


def test_register_start_and_pass_quiz(client, user, article_id):
    r = client.post(f"{PROGRESS}/{article_id}/start", headers=user["headers"])
    assert r.status_code == 200
    assert r.json()["message"] == "Content started"
    assert r.json()["data"]["progress"]["status"] == "in-progress"

    r = client.post(
        f"{PROGRESS}/{article_id}/quiz",
        headers=user["headers"],
        json={"score": 85, "totalQuestions": 10, "correctAnswers": 8, "timeTaken": 240},
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["progress"]["status"] == "completed"
    assert data["progress"]["bestScore"] == 85
    assert data["progress"]["completionPercentage"] == 100
    assert data["xpEarned"] == 8
    assert data["levelUp"] is False
    assert data["newLevel"] is None
    assert me(client, user)["experiencePoints"] == 8


def test_quiz_level_up(client, app, user, article_id):
    from aithreya.models.orm import User

    with app.state.session_factory() as session:
        session.get(User, user["user"]["id"]).experience_points = 95
        session.commit()

    r = client.post(
        f"{PROGRESS}/{article_id}/quiz",
        headers=user["headers"],
        json={"score": 60, "totalQuestions": 5, "correctAnswers": 3},
    )
    data = r.json()["data"]
    assert data["xpEarned"] == 6
    assert data["levelUp"] is True
    assert data["newLevel"] == 2
    assert data["progress"]["status"] == "not-started"
    assert me(client, user)["level"] == 2


def test_quiz_validation(client, user, article_id):
    r = client.post(
        f"{PROGRESS}/{article_id}/quiz",
        headers=user["headers"],
        json={"score": 50, "totalQuestions": 4, "correctAnswers": 5},
    )
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "correctAnswers"
    assert me(client, user)["experiencePoints"] == 0


def test_complete_awards_experience(client, user, article_id):
    r = client.post(f"{PROGRESS}/{article_id}/complete", headers=user["headers"])
    assert r.status_code == 200
    assert r.json()["message"] == "Content completed successfully"
    progress = r.json()["data"]["progress"]
    assert progress["status"] == "completed"
    assert progress["completedAt"] is not None
    assert me(client, user)["experiencePoints"] == 10


def test_update_progress(client, user, article_id):
    r = client.post(
        f"{PROGRESS}/{article_id}",
        headers=user["headers"],
        json={"completionPercentage": 40, "timeSpent": 90},
    )
    assert r.status_code == 200
    progress = r.json()["data"]["progress"]
    assert progress["status"] == "in-progress"
    assert progress["completionPercentage"] == 40
    assert progress["timeSpent"] == 90
    assert progress["content"]["articleNumber"] == "14"

    r = client.post(f"{PROGRESS}/{article_id}", headers=user["headers"], json={"completionPercentage": 100})
    assert r.json()["data"]["progress"]["status"] == "completed"


def test_update_progress_out_of_range(client, user, article_id):
    r = client.post(f"{PROGRESS}/{article_id}", headers=user["headers"], json={"completionPercentage": 140})
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "completionPercentage"


def test_mutation_on_missing_content(client, user):
    r = client.post(f"{PROGRESS}/9999/start", headers=user["headers"])
    assert r.status_code == 404
    assert r.json()["message"] == "Content not found"


def test_mutation_on_inactive_content(client, admin, user, article_id):
    client.delete(f"/api/v1/content/{article_id}", headers=admin["headers"])
    r = client.post(f"{PROGRESS}/{article_id}/bookmark", headers=user["headers"])
    assert r.status_code == 404


def test_bookmark_toggle_and_listing(client, user, article_id):
    r = client.post(f"{PROGRESS}/{article_id}/bookmark", headers=user["headers"])
    assert r.json()["message"] == "Content bookmarked"
    assert r.json()["data"]["progress"]["isBookmarked"] is True

    bookmarks = client.get(f"{PROGRESS}/bookmarks", headers=user["headers"]).json()
    assert bookmarks["total"] == 1
    assert bookmarks["data"]["bookmarks"][0]["contentId"] == article_id

    r = client.post(f"{PROGRESS}/{article_id}/bookmark", headers=user["headers"])
    assert r.json()["message"] == "Bookmark removed"
    assert r.json()["data"]["progress"]["isBookmarked"] is False
    assert client.get(f"{PROGRESS}/bookmarks", headers=user["headers"]).json()["total"] == 0


def test_content_progress(client, user, article_id):
    missing = client.get(f"{PROGRESS}/content/{article_id}", headers=user["headers"])
    assert missing.status_code == 404
    assert missing.json()["message"] == "Progress not found for this content"

    client.post(f"{PROGRESS}/{article_id}/start", headers=user["headers"])
    r = client.get(f"{PROGRESS}/content/{article_id}", headers=user["headers"])
    assert r.status_code == 200
    assert r.json()["data"]["progress"]["viewCount"] == 1


def test_progress_is_per_user(client, register, user, article_id):
    other = register(email="other@example.com", name="Other Learner")
    client.post(f"{PROGRESS}/{article_id}/start", headers=user["headers"])
    r = client.get(f"{PROGRESS}/content/{article_id}", headers=other["headers"])
    assert r.status_code == 404


def test_notes_highlights_and_rating(client, user, article_id):
    r = client.post(f"{PROGRESS}/{article_id}/notes", headers=user["headers"], json={"text": "Applies to everyone"})
    assert r.status_code == 200
    assert r.json()["data"]["progress"]["notes"][0]["text"] == "Applies to everyone"

    empty = client.post(f"{PROGRESS}/{article_id}/notes", headers=user["headers"], json={"text": ""})
    assert empty.status_code == 400
    assert empty.json()["message"] == "Note text is required"

    r = client.post(
        f"{PROGRESS}/{article_id}/highlights",
        headers=user["headers"],
        json={"text": "equal protection", "color": "blue", "position": {"start": 5, "end": 21}},
    )
    highlight = r.json()["data"]["progress"]["highlights"][0]
    assert highlight["color"] == "blue"
    assert highlight["position"] == {"start": 5, "end": 21}

    r = client.post(f"{PROGRESS}/{article_id}/rating", headers=user["headers"], json={"rating": 5, "feedback": "Great"})
    assert r.status_code == 200
    assert r.json()["data"]["progress"]["rating"] == 5

    bad = client.post(f"{PROGRESS}/{article_id}/rating", headers=user["headers"], json={"rating": 0})
    assert bad.status_code == 400


def test_list_and_overview(client, user, seeded):
    headers = user["headers"]
    client.post(f"{PROGRESS}/{seeded['preamble']}/start", headers=headers)
    client.post(f"{PROGRESS}/{seeded['fr-article-14']}/complete", headers=headers)
    client.post(f"{PROGRESS}/{seeded['fr-article-19']}/quiz", headers=headers,
                json={"score": 70, "totalQuestions": 10, "correctAnswers": 7})
    client.post(f"{PROGRESS}/{seeded['fr-article-19']}/bookmark", headers=headers)

    listing = client.get(PROGRESS, headers=headers, params={"limit": 2}).json()
    assert listing["total"] == 3
    assert listing["count"] == 2
    assert listing["pages"] == 2

    completed = client.get(PROGRESS, headers=headers, params={"status": "completed"}).json()
    assert [p["contentId"] for p in completed["data"]["progress"]] == [seeded["fr-article-14"]]

    bookmarked = client.get(PROGRESS, headers=headers, params={"isBookmarked": "true"}).json()
    assert bookmarked["total"] == 1

    overview = client.get(f"{PROGRESS}/overview", headers=headers).json()["data"]["overview"]
    assert overview == {
        "totalContent": 3,
        "completedContent": 1,
        "inProgressContent": 1,
        "bookmarkedContent": 1,
        "totalTimeSpent": 0,
        "averageScore": 70.0,
    }
