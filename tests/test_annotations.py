import json

from src.core.entities.annotation import AnnotationPatch
from src.infrastructure.persistence.annotation_store import (
    InMemoryAnnotationRepository,
    JsonFileAnnotationRepository,
)


def test_upsert_creates_blank_annotation_with_patch_applied(annotation_repo):
    created = annotation_repo.upsert("t1", AnnotationPatch(notes="chased the breakout"))

    assert created.trade_id == "t1"
    assert created.notes == "chased the breakout"
    assert created.tags == []
    assert created.rating == 0
    assert annotation_repo.get("t1") == created


def test_partial_patch_keeps_other_fields():
    repo = InMemoryAnnotationRepository()
    first = repo.upsert("t1", AnnotationPatch(notes="entry too early", tags=["fomo"], rating=2))
    second = repo.upsert("t1", AnnotationPatch(rating=4))

    assert second.notes == "entry too early"
    assert second.tags == ["fomo"]
    assert second.rating == 4
    assert second.updated_at >= first.updated_at
    assert len(repo.list_all()) == 1


def test_unknown_trade_has_no_annotation():
    assert InMemoryAnnotationRepository().get("missing") is None


def test_json_file_repository_persists_between_instances(tmp_path):
    path = tmp_path / "journal" / "annotations.json"
    repo = JsonFileAnnotationRepository(str(path))
    repo.upsert("t7", AnnotationPatch(tags=["scalp", "news"], screenshot_url="https://img.example/t7.png"))

    on_disk = json.loads(path.read_text())
    assert on_disk["t7"]["tags"] == ["scalp", "news"]

    reloaded = JsonFileAnnotationRepository(str(path))
    annotation = reloaded.get("t7")
    assert annotation.screenshot_url == "https://img.example/t7.png"
    assert annotation.tags == ["scalp", "news"]


def test_unreadable_file_is_kept_aside_before_rewrite(tmp_path):
    path = tmp_path / "annotations.json"
    path.write_text("{not json")
    repo = JsonFileAnnotationRepository(str(path))
    assert repo.list_all() == []

    repo.upsert("t1", AnnotationPatch(notes="fresh start"))
    assert (tmp_path / "annotations.json.corrupt").read_text() == "{not json"
    assert list(json.loads(path.read_text())) == ["t1"]


def test_invalid_row_does_not_destroy_the_others(tmp_path):
    path = tmp_path / "annotations.json"
    original = json.dumps({
        "a": {"trade_id": "a", "notes": "kept", "updated_at": "2025-02-01T00:00:00Z"},
        "b": {"trade_id": "b", "rating": 9, "updated_at": "2025-02-01T00:00:00Z"},
    })
    path.write_text(original)

    repo = JsonFileAnnotationRepository(str(path))
    assert repo.get("a").notes == "kept"
    assert repo.get("b") is None

    repo.upsert("c", AnnotationPatch(rating=3))
    assert sorted(json.loads(path.read_text())) == ["a", "c"]
    # the rejected row survives in the moved-aside original
    assert (tmp_path / "annotations.json.corrupt").read_text() == original
