from BeautyCache.config import ConfigManager
from BeautyCache.proxy import ProxyMaster


def _master(tmp_path, storage, fetcher):
    config = ConfigManager(tmp_path / 'settings.json')
    config.app_origin = 'https://app.test'
    config.cache_namespace = 'app'
    config.cache_version = 'v7'
    config.precache_urls = ['/', '/clinics_en.json']
    return ProxyMaster(config, storage=storage, fetcher=fetcher)


def test_controller_built_from_settings(tmp_path, storage, fetcher):
    master = _master(tmp_path, storage, fetcher)

    controller = master.build_controller()
    try:
        assert controller.cache_name == 'app-v7'
        assert controller.origin == 'https://app.test'
        assert controller.precache_urls == ['/', '/clinics_en.json']
        assert controller.storage is storage
    finally:
        controller.done()


def test_unregister_purges_all_stores_when_not_running(tmp_path, storage, fetcher):
    master = _master(tmp_path, storage, fetcher)
    storage.open('app-v6')
    storage.open('app-v7')

    messages = master.unregister(purge_caches=True)

    assert storage.keys() == []
    assert 'No controller registered' in messages
    assert 'Deleted cache store app-v6' in messages
    assert 'Deleted cache store app-v7' in messages
    assert master.status == 'Stopped'


def test_unregister_without_purge(tmp_path, storage, fetcher):
    master = _master(tmp_path, storage, fetcher)
    storage.open('app-v7')

    master.unregister(purge_caches=False)

    assert storage.keys() == ['app-v7']
