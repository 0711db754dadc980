import pytest

from aithreya.core.errors import Conflict, InvalidArgument, NotFound
from aithreya.seed import seed_content
from aithreya.services.catalog import ContentCatalog, relevance


@pytest.fixture
def contents(db):
    return {c.slug: c for c in seed_content(db)}


@pytest.fixture
def catalog(db):
    return ContentCatalog(db)


def test_seed_skips_existing_slugs(db, contents):
    assert len(contents) == 4
    assert seed_content(db) == []


def test_seed_clear_reinserts(db, contents):
    again = seed_content(db, clear=True)
    assert {c.slug for c in again} == set(contents)


def test_find_by_id_hides_inactive(db, catalog, contents):
    duty = contents["fd-article-51a-a"]
    catalog.deactivate(duty)
    db.commit()
    assert catalog.find_by_id(duty.id) is None
    assert catalog.find_by_id(duty.id, include_inactive=True) is duty
    with pytest.raises(NotFound):
        catalog.get_by_id(duty.id)


def test_find_by_article_number(catalog, contents):
    assert catalog.find_by_article_number("19").slug == "fr-article-19"
    assert catalog.find_by_article_number("51A(a)").slug == "fd-article-51a-a"
    assert catalog.find_by_article_number("370") is None


def test_list_filters(catalog, contents):
    items, total = catalog.list(content_type="fundamental-right")
    assert total == 2
    assert {c.article_number for c in items} == {"14", "19"}

    items, total = catalog.list(difficulty="intermediate")
    assert [c.slug for c in items] == ["fr-article-19"]

    items, total = catalog.list(part="4A")
    assert [c.slug for c in items] == ["fd-article-51a-a"]


def test_list_pagination_and_sorting(catalog, contents):
    items, total = catalog.list(page=1, limit=3, sort_by="title", sort_order="asc")
    assert total == 4
    titles = [c.title for c in items]
    assert titles == sorted(titles)
    assert len(items) == 3

    rest, _ = catalog.list(page=2, limit=3, sort_by="title", sort_order="asc")
    assert len(rest) == 1


def test_list_by_type_orders_by_article_number(catalog, contents):
    rights = catalog.list_by_type("fundamental-right")
    assert [c.article_number for c in rights] == ["14", "19"]


def test_search_ranks_title_hits_first(catalog, contents):
    results = catalog.search("equality")
    assert results
    top, score = results[0]
    assert top.slug == "fr-article-14"
    assert score > 0
    assert [s for _, s in results] == sorted((s for _, s in results), reverse=True)


def test_search_filters_by_type(catalog, contents):
    results = catalog.search("constitution", content_type="fundamental-duty")
    assert [c.slug for c, _ in results] == ["fd-article-51a-a"]


def test_search_requires_query(catalog):
    with pytest.raises(InvalidArgument) as exc:
        catalog.search("   ")
    assert exc.value.errors == [{"field": "q", "message": "Search query is required"}]


def test_search_no_match(catalog, contents):
    assert catalog.search("zzyzx") == []


def test_relevance_weights_title(contents):
    art14 = contents["fr-article-14"]
    assert relevance(art14, ["equality"]) > relevance(art14, ["territory"])


def test_localized_content_falls_back_to_default(catalog, contents):
    preamble = contents["preamble"]
    hindi = catalog.get_localized(preamble, "hi")
    assert hindi["language"] == "hi"
    assert hindi["content"].startswith("हम भारत के लोग")

    tamil = catalog.get_localized(preamble, "ta")
    assert tamil["language"] == "en"
    assert tamil["content"].startswith("WE, THE PEOPLE OF INDIA")
    assert tamil["explanation"] == preamble.explanation["en"]


def test_present_includes_localized_content(catalog, contents):
    data = catalog.present(contents["fr-article-19"], "hi")
    assert data["articleNumber"] == "19"
    assert data["part"] == {"number": "3", "title": "Fundamental Rights"}
    assert data["localizedContent"]["language"] == "hi"


def test_record_view(db, catalog, contents):
    art = contents["fr-article-14"]
    catalog.record_view(art)
    catalog.record_view(art)
    db.commit()
    assert catalog.get_by_id(art.id).views == 2


def test_create_lowercases_keywords_and_links_related(db, catalog, contents):
    art14 = contents["fr-article-14"]
    content = catalog.create({
        "slug": "fr-article-15",
        "contentType": "fundamental-right",
        "title": "Prohibition of discrimination",
        "articleNumber": "15",
        "content": {"en": "The State shall not discriminate against any citizen."},
        "explanation": {"en": "No discrimination on grounds of religion, race, caste, sex or place of birth."},
        "keywords": ["Discrimination", "EQUALITY"],
        "relatedArticles": [art14.id],
    })
    db.commit()
    assert content.id is not None
    assert content.keywords == ["discrimination", "equality"]
    assert [r.id for r in content.related_articles] == [art14.id]
    assert content.is_active


def test_create_duplicate_slug(db, catalog, contents):
    with pytest.raises(Conflict):
        catalog.create({
            "slug": "preamble",
            "contentType": "preamble",
            "title": "Another preamble",
            "content": {"en": "text"},
            "explanation": {"en": "text"},
        })
    # the session stays usable after the failed insert
    assert catalog.find_by_article_number("14") is not None


def test_update(db, catalog, contents):
    art = contents["fr-article-19"]
    catalog.update(art, {"difficulty": "advanced", "estimatedReadTime": 8})
    db.commit()
    assert catalog.get_by_id(art.id).difficulty == "advanced"
    assert art.estimated_read_time == 8
