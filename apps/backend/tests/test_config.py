from config import RankingWeights, Settings


def test_defaults_without_environment(monkeypatch):
    for name in ("SEARCH_ENRICH_THRESHOLD", "DISABLED_AFFILIATE_NETWORKS", "PROVIDER_REALSTORE_ENABLED"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.enrich_threshold == 10
    assert settings.max_products_per_provider == 20
    assert settings.disabled_networks == ()
    assert settings.realstore_enabled is False
    assert settings.ranking_weights == RankingWeights(price=0.6, store=0.25, rating=0.15)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SEARCH_ENRICH_THRESHOLD", "4")
    monkeypatch.setenv("SEARCH_PROVIDER_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("PROVIDER_REALSTORE_ENABLED", "yes")
    monkeypatch.setenv("REALSTORE_API_KEY", "  secret  ")
    monkeypatch.setenv("DISABLED_AFFILIATE_NETWORKS", " Profitshare, 2performant ,,")
    monkeypatch.setenv("RANK_WEIGHT_PRICE", "0.5")

    settings = Settings.from_env()

    assert settings.enrich_threshold == 4
    assert settings.provider_timeout_seconds == 2.5
    assert settings.realstore_enabled is True
    assert settings.realstore_api_key == "secret"
    assert settings.disabled_networks == ("profitshare", "2performant")
    assert settings.ranking_weights.price == 0.5


def test_invalid_numbers_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("SEARCH_ENRICH_THRESHOLD", "many")
    monkeypatch.setenv("SEARCH_STORE_TIMEOUT_SECONDS", "soon")

    settings = Settings.from_env()

    assert settings.enrich_threshold == 10
    assert settings.store_timeout_seconds == 5.0


def test_blank_values_use_defaults(monkeypatch):
    monkeypatch.setenv("AFFILIATE_NETWORK", "   ")
    monkeypatch.setenv("PROVIDER_STATIC_ENABLED", "")

    settings = Settings.from_env()

    assert settings.affiliate_network == "profitshare"
    assert settings.static_enabled is True
