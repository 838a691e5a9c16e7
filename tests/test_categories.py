"""Unit tests for CategoryReconciler."""
from sqlmodel import select

from invintus_sync.models.content_models import CategoryNode
from invintus_sync.models.payload_models import RemoteCategory
from invintus_sync.sync.categories import CategoryReconciler


def _categories(*items):
    return [RemoteCategory.model_validate(item) for item in items]


NEWS_LOCAL = (
    {"categoryID": 1, "categoryName": "News"},
    {"categoryID": 2, "categoryName": "Local", "childOf": 1},
)


class TestCategoryReconciler:
    """Test cases for CategoryReconciler.resolve."""

    def test_parent_child(self, session):
        ids = CategoryReconciler(session).resolve(_categories(*NEWS_LOCAL))
        session.commit()

        news = session.get(CategoryNode, ids[0])
        local = session.get(CategoryNode, ids[1])
        assert news.name == "News"
        assert news.parent_id is None
        assert local.name == "Local"
        assert local.parent_id == news.id
        assert local.slug == "local"

    def test_resubmission_yields_same_nodes(self, session):
        first = CategoryReconciler(session).resolve(_categories(*NEWS_LOCAL))
        session.commit()
        second = CategoryReconciler(session).resolve(_categories(*NEWS_LOCAL))
        session.commit()

        assert first == second
        assert len(session.exec(select(CategoryNode)).all()) == 2

    def test_second_call_updates_fields(self, session):
        reconciler = CategoryReconciler(session)
        [node_id] = reconciler.resolve(_categories({"categoryID": 5, "categoryName": "Sports"}))
        reconciler.resolve(
            _categories(
                {"categoryID": 5, "categoryName": "Athletics", "categoryDescription": "Games"}
            )
        )
        session.commit()

        node = session.get(CategoryNode, node_id)
        assert node.name == "Athletics"
        assert node.slug == "athletics"
        assert node.description == "Games"

    def test_name_match_adopts_remote_id(self, session):
        """Taxonomy created before the sync is reused rather than duplicated."""
        existing = CategoryNode(name="Council", slug="council")
        session.add(existing)
        session.commit()

        [node_id] = CategoryReconciler(session).resolve(
            _categories({"categoryID": 77, "categoryName": "Council"})
        )
        session.commit()

        assert node_id == existing.id
        assert session.get(CategoryNode, node_id).remote_category_id == 77

    def test_forward_parent_reference(self, session):
        """A child listed before its parent is still linked."""
        ids = CategoryReconciler(session).resolve(
            _categories(
                {"categoryID": 2, "categoryName": "Local", "childOf": 1},
                {"categoryID": 1, "categoryName": "News"},
            )
        )
        session.commit()

        assert session.get(CategoryNode, ids[0]).parent_id == ids[1]

    def test_parent_from_earlier_call(self, session):
        reconciler = CategoryReconciler(session)
        [news_id] = reconciler.resolve(_categories({"categoryID": 1, "categoryName": "News"}))
        [local_id] = reconciler.resolve(
            _categories({"categoryID": 2, "categoryName": "Local", "childOf": 1})
        )
        session.commit()

        assert session.get(CategoryNode, local_id).parent_id == news_id

    def test_unknown_parent_stays_top_level(self, session):
        [node_id] = CategoryReconciler(session).resolve(
            _categories({"categoryID": 3, "categoryName": "Orphan", "childOf": 999})
        )
        session.commit()

        node = session.get(CategoryNode, node_id)
        assert node.parent_id is None
        assert node.remote_parent_id == 999

    def test_nameless_unknown_descriptor_skipped(self, session):
        ids = CategoryReconciler(session).resolve(_categories({"categoryID": 9}))

        assert ids == []
        assert session.exec(select(CategoryNode)).all() == []

    def test_duplicate_descriptors_deduplicated(self, session):
        ids = CategoryReconciler(session).resolve(
            _categories(
                {"categoryID": 1, "categoryName": "News"},
                {"categoryID": 1, "categoryName": "News"},
            )
        )
        assert len(ids) == 1

    def test_empty_list(self, session):
        assert CategoryReconciler(session).resolve([]) == []
