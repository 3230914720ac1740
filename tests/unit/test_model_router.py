import pytest

from modelgate.core.provider.model_router import ModelRouter


@pytest.mark.unit
class TestModelRouter:
    def test_qualified_routes_always_added(self):
        router = ModelRouter()
        router.add_models("A", ["chat"])
        router.add_models("B", ["chat"])

        assert router.lookup("A,chat").provider_name == "A"
        assert router.lookup("B,chat").provider_name == "B"
        assert router.lookup("chat").provider_name == "A"
        assert router.claimed_by("chat") == "A"

    def test_remove_releases_bare_name_without_successor(self):
        router = ModelRouter()
        router.add_models("A", ["chat"])
        router.add_models("B", ["chat"])

        router.remove_models("A", ["chat"])

        assert router.lookup("A,chat") is None
        assert router.lookup("chat") is None
        assert router.claimed_by("chat") is None
        assert router.lookup("B,chat").provider_name == "B"

    def test_remove_leaves_other_claims_alone(self):
        router = ModelRouter()
        router.add_models("A", ["chat"])
        router.add_models("B", ["chat"])

        router.remove_models("B", ["chat"])

        assert router.lookup("chat").provider_name == "A"
        assert router.lookup("B,chat") is None

    def test_bare_name_never_overwrites_qualified_entry(self):
        router = ModelRouter()
        router.add_models("B", ["chat"])
        router.add_models("A", ["B,chat"])

        assert router.lookup("B,chat").provider_name == "B"
        assert router.claimed_by("B,chat") is None

        router.remove_models("A", ["B,chat"])
        assert router.lookup("B,chat").provider_name == "B"

    def test_copy_is_independent(self):
        router = ModelRouter()
        router.add_models("A", ["chat"])
        clone = router.copy()
        clone.add_models("A", ["new"])

        assert router.lookup("new") is None
        assert clone.lookup("new").provider_name == "A"

    def test_replace_keeps_claims_on_kept_models(self):
        router = ModelRouter()
        router.add_models("A", ["m1", "m2"])
        router.add_models("B", ["m2"])

        router.replace_models("A", ["m1", "m2"], ["m2", "m3"])

        assert router.lookup("m1") is None
        assert router.lookup("A,m1") is None
        assert router.claimed_by("m2") == "A"
        assert router.lookup("m3").qualified_name == "A,m3"
