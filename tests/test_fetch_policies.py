import asyncio
import json
import threading

import pytest

from BeautyCache.cache import CachedResponse, ProxyRequest
from BeautyCache.proxy.addons import RequestKind, classify_request
from BeautyCache.proxy.fetcher import NetworkError

from conftest import asset, data, page, url


def _run(controller, *requests):
    """Activate the controller, then handle requests in order."""

    async def run():
        await controller.start()
        results = [await controller.handle(r) for r in requests]
        await controller.wait_for_background()
        return results

    return asyncio.run(run())


def _cached(target, body, content_type='text/html'):
    return CachedResponse(target, 200, {'Content-Type': content_type}, body)


def test_classification():
    assert classify_request(page(url('/categories/en'))) is RequestKind.NAVIGATION
    assert classify_request(data(url('/clinics_ar.json'))) is RequestKind.JSON
    assert classify_request(data(url('/clinics_ar.json?v=2'))) is RequestKind.JSON
    assert classify_request(asset(url('/assets/index.js'))) is RequestKind.ASSET
    assert classify_request(asset(url('/data.json.png'))) is RequestKind.ASSET
    # No Fetch Metadata: an HTML GET is a page load
    legacy = ProxyRequest('GET', url('/menu'), {'Accept': 'text/html,application/xhtml+xml'})
    assert classify_request(legacy) is RequestKind.NAVIGATION


def test_cross_origin_request_passes_through(make_controller, fetcher, storage):
    tracker = 'https://analytics.example.com/collect'
    controller = make_controller()

    (result,) = _run(controller, asset(tracker))

    assert result is None
    assert fetcher.calls == []
    assert storage.match(tracker) is None


def test_same_host_different_port_is_cross_origin(make_controller, fetcher):
    controller = make_controller()

    (result,) = _run(controller, asset('https://app.test:8443/app.js'))

    assert result is None
    assert fetcher.calls == []


def test_default_port_is_same_origin(make_controller, fetcher):
    fetcher.serve('https://app.test:443/app.js', b'js', content_type='text/javascript')
    controller = make_controller()

    (result,) = _run(controller, asset('https://app.test:443/app.js'))

    assert result.content == b'js'


def test_non_get_requests_pass_through(make_controller, fetcher):
    controller = make_controller()
    post = ProxyRequest('POST', url('/api/contact'), {'Content-Type': 'application/json'}, b'{}')

    (result,) = _run(controller, post)

    assert result is None
    assert fetcher.calls == []


def test_navigation_network_success_updates_cache(make_controller, fetcher, storage):
    storage.open('app-v4').put(url('/'), _cached(url('/'), b'<html>v4</html>'))
    fetcher.serve(url('/'), '<html>v5</html>')
    controller = make_controller()

    (result,) = _run(controller, page(url('/')))

    assert result.content == b'<html>v5</html>'
    assert storage.open('app-v4').match(url('/')).content == b'<html>v5</html>'


def test_navigation_offline_serves_cached_page(make_controller, fetcher, storage):
    storage.open('app-v4').put(url('/menu/3'), _cached(url('/menu/3'), b'<html>menu</html>'))
    storage.open('app-v4').put(url('/'), _cached(url('/'), b'<html>shell</html>'))
    fetcher.offline = True
    controller = make_controller()

    (result,) = _run(controller, page(url('/menu/3')))

    assert result.content == b'<html>menu</html>'


def test_navigation_offline_falls_back_to_app_shell(make_controller, fetcher, storage):
    storage.open('app-v4').put(url('/'), _cached(url('/'), b'<html>shell</html>'))
    fetcher.offline = True
    controller = make_controller()

    (result,) = _run(controller, page(url('/categories/ku')))

    assert result.content == b'<html>shell</html>'


def test_navigation_offline_with_empty_cache_fails(make_controller, fetcher):
    fetcher.offline = True
    controller = make_controller()

    with pytest.raises(NetworkError):
        _run(controller, page(url('/categories/ar')))


def test_navigation_error_status_is_returned_but_not_cached(make_controller, fetcher, storage):
    fetcher.serve(url('/broken'), '<html>oops</html>', status=500)
    controller = make_controller()

    (result,) = _run(controller, page(url('/broken')))

    assert result.status_code == 500
    assert url('/broken') not in storage.open('app-v4')


def test_json_offline_without_cache_returns_empty_object(make_controller, fetcher):
    fetcher.fail(url('/clinics_ar.json'))
    controller = make_controller()

    (result,) = _run(controller, data(url('/clinics_ar.json')))

    assert result.json() == {}
    assert result.content_type == 'application/json'


def test_json_offline_serves_cached_copy(make_controller, fetcher, storage):
    body = json.dumps([{'name': 'Clinic'}]).encode()
    storage.open('app-v4').put(url('/clinics_en.json'), _cached(url('/clinics_en.json'), body, 'application/json'))
    fetcher.offline = True
    controller = make_controller()

    (result,) = _run(controller, data(url('/clinics_en.json')))

    assert result.json() == [{'name': 'Clinic'}]


def test_json_fetch_busts_caches_and_stores_result(make_controller, fetcher, storage):
    fetcher.serve(url('/clinics_ku.json'), '{"v": 2}', content_type='application/json')
    controller = make_controller()
    request = ProxyRequest(
        'GET', url('/clinics_ku.json'), {'Accept': 'application/json', 'If-None-Match': '"abc"'}
    )

    (result,) = _run(controller, request)

    assert result.json() == {'v': 2}
    sent = fetcher.calls[-1]
    assert sent.headers['Cache-Control'] == 'no-cache'
    assert sent.headers['Pragma'] == 'no-cache'
    assert 'If-None-Match' not in sent.headers
    assert storage.open('app-v4').match(url('/clinics_ku.json')).json() == {'v': 2}


def test_asset_hit_returns_stale_then_refreshes(make_controller, fetcher, storage):
    target = url('/images/hero.webp')
    storage.open('app-v4').put(target, _cached(target, b'old-image', 'image/webp'))
    fetcher.serve(target, b'new-image', content_type='image/webp')
    gate = threading.Event()
    fetcher.gates[target] = gate
    controller = make_controller()

    async def run():
        await controller.start()
        first = await controller.handle(asset(target))
        # The revalidation is still blocked on the network after the caller got its answer
        for _ in range(200):
            if fetcher.in_flight:
                break
            await asyncio.sleep(0.01)
        still_fetching = fetcher.in_flight == 1
        gate.set()
        await controller.wait_for_background()
        second = await controller.handle(asset(target))
        await controller.wait_for_background()
        return first, still_fetching, second

    first, still_fetching, second = asyncio.run(run())

    assert first.content == b'old-image'
    assert still_fetching
    assert second.content == b'new-image'
    assert storage.open('app-v4').match(target).content == b'new-image'


def test_asset_revalidation_ignores_non_200(make_controller, fetcher, storage):
    target = url('/assets/app.css')
    storage.open('app-v4').put(target, _cached(target, b'body{}', 'text/css'))
    fetcher.serve(target, b'gone', status=404)
    controller = make_controller()

    first, second = _run(controller, asset(target), asset(target))

    assert first.content == b'body{}'
    assert second.content == b'body{}'


def test_asset_revalidation_failure_keeps_cached(make_controller, fetcher, storage):
    target = url('/assets/app.js')
    storage.open('app-v4').put(target, _cached(target, b'js-v1', 'text/javascript'))
    fetcher.offline = True
    controller = make_controller()

    first, second = _run(controller, asset(target), asset(target))

    assert first.content == second.content == b'js-v1'


def test_asset_miss_waits_for_network_and_caches_200(make_controller, fetcher, storage):
    target = url('/assets/vendor.js')
    fetcher.serve(target, b'vendor', content_type='text/javascript')
    controller = make_controller()

    (result,) = _run(controller, asset(target))

    assert result.content == b'vendor'
    assert storage.open('app-v4').match(target).content == b'vendor'


def test_asset_miss_offline_fails(make_controller, fetcher, storage):
    target = url('/images/missing.webp')
    fetcher.offline = True
    controller = make_controller()

    with pytest.raises(NetworkError):
        _run(controller, asset(target))
    assert storage.match(target) is None


def test_blocked_refreshes_do_not_delay_cache_hits(make_controller, fetcher, storage):
    store = storage.open('app-v4')
    targets = [url(f'/images/clinic-{i}.webp') for i in range(5)]
    for target in targets:
        store.put(target, _cached(target, b'old-' + target.encode(), 'image/webp'))
        fetcher.serve(target, b'new', content_type='image/webp')
    gates = {target: threading.Event() for target in targets[:4]}
    fetcher.gates.update(gates)
    fetcher.serve(url('/clinics_en.json'), '{"v": 1}', content_type='application/json')
    controller = make_controller()

    async def run():
        await controller.start()
        try:
            for target in targets[:4]:
                await controller.handle(asset(target))
            # Every refresh worker is now stuck on the network
            for _ in range(200):
                if fetcher.in_flight == 4:
                    break
                await asyncio.sleep(0.01)
            blocked = fetcher.in_flight
            hit = await asyncio.wait_for(controller.handle(asset(targets[4])), 1.0)
            fresh = await asyncio.wait_for(controller.handle(data(url('/clinics_en.json'))), 1.0)
        finally:
            for gate in gates.values():
                gate.set()
        await controller.wait_for_background()
        return blocked, hit, fresh

    blocked, hit, fresh = asyncio.run(run())

    assert blocked == 4
    assert hit.content == b'old-' + targets[4].encode()
    assert fresh.json() == {'v': 1}
