"""
Browser session tests
"""
import pytest
from unittest.mock import Mock, MagicMock, AsyncMock, patch
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from playwright.async_api import Error as PlaywrightError

from webcontract.errors import PreconditionError, ResolutionError, FetchError, MalformedInputError
from webcontract.models import SnapshotDocument
from webcontract.session import BrowserSession, SessionState, coerce_fields


PAGE_HTML = """
<html><head><title>Checkout</title></head><body>
<form><input name="email" placeholder="Email"><input type="hidden" name="token"><button type="submit">Pay</button></form>
<a href="/help">Help</a>
</body></html>
"""


def make_field_locator(count):
    locator = MagicMock()
    locator.count = AsyncMock(return_value=count)
    locator.first.fill = AsyncMock()
    return locator


@pytest.fixture
def mock_playwright():
    """Mocked Playwright driver, browser, context and page"""
    with patch('webcontract.session.async_playwright') as mock:
        playwright = AsyncMock()
        browser = AsyncMock()
        context = AsyncMock()
        page = MagicMock()

        mock.return_value.start = AsyncMock(return_value=playwright)
        playwright.chromium.launch.return_value = browser
        browser.new_context.return_value = context
        context.new_page.return_value = page

        page.url = 'https://shop.example.com/checkout'
        page.goto = AsyncMock(return_value=Mock(status=200))
        page.title = AsyncMock(return_value='Checkout')
        page.content = AsyncMock(return_value=PAGE_HTML)
        page.wait_for_timeout = AsyncMock()

        yield {
            'async_playwright': mock,
            'playwright': playwright,
            'browser': browser,
            'context': context,
            'page': page,
        }


class TestPreconditions:
    """Operations before launch fail fast"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize('operation,args', [
        ('click', ('Buy',)),
        ('fill', ('email', 'a@b.c')),
        ('fill_form', ({'email': 'a@b.c'},)),
        ('get_snapshot', ()),
        ('navigate', ('https://example.com',)),
        ('content', ()),
    ])
    async def test_requires_launch(self, operation, args):
        session = BrowserSession()
        with pytest.raises(PreconditionError) as exc_info:
            await getattr(session, operation)(*args)

        assert not isinstance(exc_info.value, ResolutionError)
        assert exc_info.value.to_result()['ok'] is False

    @pytest.mark.asyncio
    async def test_close_without_launch(self):
        assert await BrowserSession().close() == {'ok': True, 'message': 'No browser was open'}

    def test_unknown_config_key(self):
        with pytest.raises(ValueError):
            BrowserSession({'no_such_option': True})


class TestLifecycle:
    """Launch, navigate and close"""

    @pytest.mark.asyncio
    async def test_launch_is_idempotent(self, mock_playwright):
        session = BrowserSession()
        first = await session.launch()
        second = await session.launch()

        assert first == {'ok': True, 'message': 'Browser opened (headless)'}
        assert second == {'ok': True, 'message': 'Browser already open'}
        assert session.state == SessionState.LAUNCHED
        mock_playwright['playwright'].chromium.launch.assert_awaited_once_with(headless=True, args=['--no-sandbox'])
        kwargs = mock_playwright['browser'].new_context.call_args.kwargs
        assert kwargs['viewport'] == {'width': 1280, 'height': 800}

    @pytest.mark.asyncio
    async def test_headed_launch(self, mock_playwright):
        session = BrowserSession({'headful': True})
        result = await session.launch()
        assert result['message'] == 'Browser opened (visible)'
        mock_playwright['playwright'].chromium.launch.assert_awaited_once_with(headless=False, args=[])

    @pytest.mark.asyncio
    async def test_independent_handles(self, mock_playwright):
        a = BrowserSession()
        b = BrowserSession()
        await a.launch()
        await b.launch()
        assert mock_playwright['playwright'].chromium.launch.await_count == 2

    @pytest.mark.asyncio
    async def test_navigate(self, mock_playwright):
        session = BrowserSession()
        await session.launch()
        result = await session.navigate('https://shop.example.com/checkout')

        assert result == {
            'ok': True,
            'url': 'https://shop.example.com/checkout',
            'status': 200,
            'title': 'Checkout',
        }
        assert session.state == SessionState.READY
        mock_playwright['page'].goto.assert_awaited_once_with(
            'https://shop.example.com/checkout', wait_until='domcontentloaded', timeout=30000
        )

    @pytest.mark.asyncio
    async def test_navigate_failure(self, mock_playwright):
        mock_playwright['page'].goto = AsyncMock(side_effect=PlaywrightError('net::ERR_NAME_NOT_RESOLVED'))
        session = BrowserSession()
        await session.launch()

        with pytest.raises(FetchError) as exc_info:
            await session.navigate('https://nowhere.invalid')
        assert exc_info.value.url == 'https://nowhere.invalid'
        assert session.state == SessionState.LAUNCHED

    @pytest.mark.asyncio
    async def test_navigate_with_network_capture(self, mock_playwright):
        page = mock_playwright['page']
        handlers = {}
        page.on.side_effect = lambda event, handler: handlers.__setitem__(event, handler)

        def request(url, resource_type='fetch'):
            r = Mock()
            r.method = 'POST'
            r.url = url
            r.resource_type = resource_type
            r.post_data = '{"q": "boots"}'
            r.headers = {}
            return r

        async def settle(ms):
            handlers['requestfinished'](request('https://api.example.com/search'))
            handlers['requestfinished'](request('https://api.example.com/search'))
            handlers['requestfinished'](request('https://cdn.example.com/app.css', 'stylesheet'))

        page.wait_for_timeout = AsyncMock(side_effect=settle)

        session = BrowserSession({'network_settle_ms': 100})
        await session.launch()
        result = await session.navigate('https://shop.example.com', capture_network=True)

        page.wait_for_timeout.assert_awaited_once_with(100)
        calls = result['networkCalls']
        assert [(c.method, c.url) for c in calls] == [('POST', 'https://api.example.com/search')]
        page.remove_listener.assert_called_once()

    @pytest.mark.asyncio
    async def test_close(self, mock_playwright):
        session = BrowserSession()
        await session.launch()
        result = await session.close()

        assert result == {'ok': True, 'message': 'Browser closed'}
        assert session.state == SessionState.UNINITIALIZED
        assert session.page is None
        mock_playwright['browser'].close.assert_awaited_once()
        mock_playwright['playwright'].stop.assert_awaited_once()
        with pytest.raises(PreconditionError):
            await session.click('Pay')

    @pytest.mark.asyncio
    async def test_failed_context_releases_browser(self, mock_playwright):
        mock_playwright['browser'].new_context.side_effect = PlaywrightError('context crashed')
        session = BrowserSession()

        with pytest.raises(PlaywrightError):
            await session.launch()

        assert session.browser is None and session.page is None
        assert session.state == SessionState.UNINITIALIZED
        mock_playwright['browser'].close.assert_awaited_once()
        mock_playwright['playwright'].stop.assert_awaited_once()

        mock_playwright['browser'].new_context.side_effect = None
        result = await session.launch()
        assert result == {'ok': True, 'message': 'Browser opened (headless)'}
        assert session.page is mock_playwright['page']

    @pytest.mark.asyncio
    async def test_failed_browser_launch_stops_driver(self, mock_playwright):
        mock_playwright['playwright'].chromium.launch.side_effect = PlaywrightError('Executable doesn\'t exist')
        session = BrowserSession()

        with pytest.raises(PlaywrightError):
            await session.launch()

        mock_playwright['playwright'].stop.assert_awaited_once()
        assert session.playwright is None
        assert await session.close() == {'ok': True, 'message': 'No browser was open'}

    @pytest.mark.asyncio
    async def test_close_continues_after_step_failure(self, mock_playwright):
        mock_playwright['context'].close.side_effect = PlaywrightError('Target closed')
        session = BrowserSession()
        await session.launch()

        with pytest.raises(PlaywrightError):
            await session.close()

        mock_playwright['browser'].close.assert_awaited_once()
        mock_playwright['playwright'].stop.assert_awaited_once()
        assert session.page is None
        assert session.state == SessionState.UNINITIALIZED

    @pytest.mark.asyncio
    async def test_capture_listener_removed_when_title_fails(self, mock_playwright):
        page = mock_playwright['page']
        page.title = AsyncMock(side_effect=PlaywrightError('Execution context was destroyed'))
        session = BrowserSession()
        await session.launch()

        with pytest.raises(PlaywrightError):
            await session.navigate('https://shop.example.com', capture_network=True)

        page.on.assert_called_once()
        page.remove_listener.assert_called_once_with('requestfinished', page.on.call_args.args[1])

    @pytest.mark.asyncio
    async def test_context_manager(self, mock_playwright):
        async with BrowserSession() as session:
            assert session.state == SessionState.LAUNCHED
        mock_playwright['browser'].close.assert_awaited_once()


class TestInteractions:
    """Click, fill, batch fill and snapshot"""

    @pytest.mark.asyncio
    async def test_click_uses_configured_timeout(self, mock_playwright):
        page = mock_playwright['page']
        button = MagicMock()
        button.count = AsyncMock(return_value=1)
        button.first.click = AsyncMock()
        page.get_by_role.return_value = button

        session = BrowserSession({'click_timeout': 500})
        await session.launch()
        result = await session.click('Pay')

        assert result['clicked'] == 'Pay'
        button.first.click.assert_awaited_once_with(timeout=500)

    @pytest.mark.asyncio
    async def test_fill_form_in_order(self, mock_playwright):
        page = mock_playwright['page']
        locators = {}
        page.locator.side_effect = lambda sel: locators.setdefault(sel, make_field_locator(1))

        session = BrowserSession()
        await session.launch()
        result = await session.fill_form({'email': 'a@b.c', 'qty': 3})

        assert result == {'ok': True, 'filled': [{'field': 'email', 'value': 'a@b.c'}, {'field': 'qty', 'value': '3'}]}
        selectors = [c.args[0] for c in page.locator.call_args_list]
        assert '[name="email"]' in selectors[0]
        assert '[name="qty"]' in selectors[1]

    @pytest.mark.asyncio
    async def test_fill_form_aborts_on_first_failure(self, mock_playwright):
        page = mock_playwright['page']
        missing = make_field_locator(0)
        page.locator.side_effect = lambda sel: missing if 'missing' in sel else make_field_locator(1)
        page.get_by_label.return_value = make_field_locator(0)
        page.get_by_placeholder.return_value = make_field_locator(0)

        session = BrowserSession()
        await session.launch()
        with pytest.raises(ResolutionError) as exc_info:
            await session.fill_form({'email': 'a@b.c', 'missing': 'x', 'after': 'y'})

        assert exc_info.value.target == 'missing'
        assert exc_info.value.filled == ['email']
        assert exc_info.value.to_result()['filled'] == ['email']
        assert not any('after' in c.args[0] for c in page.locator.call_args_list)

    @pytest.mark.asyncio
    @pytest.mark.parametrize('payload', ['{not json', '[1, 2]', 7])
    async def test_fill_form_malformed_payload_is_noop(self, mock_playwright, payload):
        session = BrowserSession()
        await session.launch()
        result = await session.fill_form(payload)

        assert result == {'ok': True, 'filled': []}
        mock_playwright['page'].locator.assert_not_called()

    @pytest.mark.asyncio
    async def test_fill_form_blank_field_name_fills_nothing(self, mock_playwright):
        page = mock_playwright['page']
        page.locator.side_effect = lambda sel: make_field_locator(1)
        session = BrowserSession()
        await session.launch()
        result = await session.fill_form({'email': 'a@b.c', '  ': 'x'})

        assert result == {'ok': True, 'filled': []}
        page.locator.assert_not_called()

    @pytest.mark.asyncio
    async def test_fill_form_waits_for_late_field(self, mock_playwright):
        page = mock_playwright['page']
        late = make_field_locator(0)
        late.count = AsyncMock(side_effect=[0, 1])
        page.locator.return_value = late
        page.get_by_label.return_value = make_field_locator(0)
        page.get_by_placeholder.return_value = make_field_locator(0)
        session = BrowserSession()
        await session.launch()
        result = await session.fill_form({'email': 'a@b.c'})

        assert result['filled'] == [{'field': 'email', 'value': 'a@b.c'}]
        page.wait_for_timeout.assert_awaited_once_with(250)

    @pytest.mark.asyncio
    async def test_fill_form_json_string(self, mock_playwright):
        page = mock_playwright['page']
        page.locator.side_effect = lambda sel: make_field_locator(1)
        session = BrowserSession()
        await session.launch()
        result = await session.fill_form('{"email": "a@b.c"}')
        assert result['filled'] == [{'field': 'email', 'value': 'a@b.c'}]

    @pytest.mark.asyncio
    async def test_snapshot_reads_live_markup(self, mock_playwright):
        session = BrowserSession()
        await session.launch()
        snapshot = await session.get_snapshot()

        assert isinstance(snapshot, SnapshotDocument)
        assert snapshot.url == 'https://shop.example.com/checkout'
        assert snapshot.title == 'Checkout'
        assert snapshot.forms == [{
            'type': 'form',
            'submitLabel': 'Pay',
            'inputs': [{'name': 'email', 'label': 'Email', 'type': 'text'}],
        }]
        assert snapshot.links == [{'type': 'link', 'text': 'Help', 'href': '/help'}]
        mock_playwright['page'].content.assert_awaited_once()


class TestCoerceFields:
    """Batch fill payloads"""

    def test_mapping_and_json(self):
        assert coerce_fields({'a': 1}) == {'a': 1}
        assert coerce_fields('{"a": 1}') == {'a': 1}
        assert coerce_fields(None) == {}

    def test_malformed(self):
        with pytest.raises(MalformedInputError):
            coerce_fields('nope')
        with pytest.raises(MalformedInputError):
            coerce_fields(['a'])
        with pytest.raises(MalformedInputError):
            coerce_fields({'': 'x'})


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
