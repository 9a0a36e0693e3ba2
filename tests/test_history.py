"""History listing and direct save tests."""

from __future__ import annotations

import datetime

import pytest

from imagegen import crud, models
from imagegen.errors import PersistenceError, ValidationError
from imagegen.history import list_history, save_direct


def add_image(db, prompt: str, created_at: datetime.datetime, user_id: str = "anonymous") -> models.GeneratedImage:
    image = models.GeneratedImage(
        prompt=prompt,
        image_url=f"https://cdn/{prompt}.png",
        width=1024,
        height=1024,
        user_id=user_id,
        created_at=created_at,
    )
    db.add(image)
    db.commit()
    return image


def at(minute: int) -> datetime.datetime:
    return datetime.datetime(2024, 1, 1, 12, minute)


@pytest.fixture
def seeded(db_session):
    # Inserted out of chronological order on purpose
    add_image(db_session, "second", at(2))
    add_image(db_session, "fourth", at(4))
    add_image(db_session, "first", at(1))
    add_image(db_session, "third", at(3))
    add_image(db_session, "other-user", at(5), user_id="bob")
    return db_session


def prompts(images) -> list:
    return [image.prompt for image in images]


def test_list_history_is_newest_first_for_user(seeded):
    assert prompts(list_history(seeded)) == ["fourth", "third", "second", "first"]


def test_list_history_filters_by_user(seeded):
    assert prompts(list_history(seeded, user_id="bob")) == ["other-user"]
    assert list_history(seeded, user_id="nobody") == []


def test_limit_and_offset(seeded):
    assert prompts(list_history(seeded, limit=2)) == ["fourth", "third"]
    assert prompts(list_history(seeded, limit=2, offset=1)) == ["third", "second"]
    assert prompts(list_history(seeded, limit="2", offset="3")) == ["first"]
    assert list_history(seeded, offset=10) == []


def test_non_numeric_pagination_falls_back_to_defaults(seeded):
    assert prompts(list_history(seeded, limit="many", offset="some")) == ["fourth", "third", "second", "first"]


def test_default_limit_is_fifty(db_session):
    for minute in range(55):
        add_image(db_session, f"image-{minute}", datetime.datetime(2024, 1, 1, 0, minute))

    images = list_history(db_session)

    assert len(images) == 50
    assert images[0].prompt == "image-54"


def test_empty_history_is_empty_list(db_session):
    assert list_history(db_session) == []


def test_list_history_store_failure_raises(broken_db_session):
    with pytest.raises(PersistenceError):
        list_history(broken_db_session)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, 50), ("", 50), ("abc", 50), ("0", 50), (0, 50), ("-3", 50), ("10", 10), (" 7 ", 7), (25, 25), (True, 50),
        ("1_000", 50), ("10abc", 50), ("\u0663", 50),
        ("99999999999999999999", crud.MAX_PAGINATION_VALUE),
        ("9" * 5000, crud.MAX_PAGINATION_VALUE),
        (10 ** 30, crud.MAX_PAGINATION_VALUE),
        ("-99999999999999999999", 50),
    ],
)
def test_parse_limit(value, expected):
    assert crud.parse_limit(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, 0), ("", 0), ("abc", 0), ("-1", 0), ("0", 0), ("5", 5), (12, 12), ("1_000", 0),
        ("99999999999999999999", crud.MAX_PAGINATION_VALUE),
        ("-99999999999999999999", 0),
    ],
)
def test_parse_offset(value, expected):
    assert crud.parse_offset(value) == expected


def test_save_direct_defaults(db_session):
    image = save_direct(db_session, "imported", "https://cdn/imported.png")

    assert image.id is not None
    assert image.created_at is not None
    assert (image.width, image.height) == (1024, 1024)
    assert image.user_id == "anonymous"
    assert prompts(list_history(db_session)) == ["imported"]


def test_save_direct_with_explicit_fields(db_session):
    image = save_direct(db_session, "wide", "s3://bucket/wide.png", width=1920, height=1080, user_id="carol")

    assert (image.width, image.height, image.user_id) == (1920, 1080, "carol")
    assert image.image_url == "s3://bucket/wide.png"


@pytest.mark.parametrize(
    "prompt, image_url",
    [
        ("", "https://cdn/x.png"),
        (None, "https://cdn/x.png"),
        ("a prompt", ""),
        ("a prompt", None),
        ("", ""),
        (42, "https://cdn/x.png"),
    ],
)
def test_save_direct_requires_prompt_and_image_url(db_session, monkeypatch, prompt, image_url):
    def unexpected_insert(*args, **kwargs):
        raise AssertionError("store must not be reached")

    monkeypatch.setattr(crud, "insert_image", unexpected_insert)

    with pytest.raises(ValidationError):
        save_direct(db_session, prompt, image_url)


@pytest.mark.parametrize("width, height", [(0, 1024), (1024, -1), (10.5, 1024)])
def test_save_direct_rejects_bad_dimensions(db_session, width, height):
    with pytest.raises(ValidationError):
        save_direct(db_session, "a prompt", "https://cdn/x.png", width=width, height=height)


def test_save_direct_store_failure_is_fatal(broken_db_session):
    with pytest.raises(PersistenceError):
        save_direct(broken_db_session, "a prompt", "https://cdn/x.png")


def test_store_rejects_empty_prompt_at_database_level(db_session):
    with pytest.raises(PersistenceError):
        crud.insert_image(db_session, "", "https://cdn/x.png", 1024, 1024, "anonymous")

    # The session is usable again after the rollback
    assert crud.insert_image(db_session, "ok", "https://cdn/x.png", 1024, 1024, "anonymous").id is not None


def test_oversized_pagination_is_bounded(seeded):
    assert prompts(list_history(seeded, limit="99999999999999999999")) == ["fourth", "third", "second", "first"]
    assert list_history(seeded, offset="99999999999999999999") == []


def test_created_at_is_assigned_by_the_store(db_session):
    column = models.GeneratedImage.__table__.c.created_at
    assert column.default is None
    assert column.server_default is not None

    image = crud.insert_image(db_session, "clocked", "https://cdn/clocked.png", 1024, 1024, "anonymous")

    assert isinstance(image.created_at, datetime.datetime)
