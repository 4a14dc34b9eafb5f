"""
Tests for the discovery and enrichment collaborators.

HTTP is served by httpx.MockTransport handlers; the AI client is a mock
where the test is not about the AI client itself.
"""

import json
import math
from datetime import date
from unittest.mock import Mock

import httpx
import pytest

from catalog.collectors import (
    AIClient,
    Collaborators,
    CustomSearchClient,
    GeekbenchEnricher,
    HttpFetcher,
    PriceCategoryEnricher,
    PriceEnricher,
    ReviewEnricher,
    SentimentResult,
    SpecSheetEnricher,
    SpecsApiDiscovery,
    build_review_sources,
)
from catalog.collectors.discovery import BrandListing
from catalog.collectors.reviews import CnetReviewSource, TomsGuideReviewSource
from catalog.constants import PriceCategory
from catalog.exceptions import (
    AINetworkError,
    CreatingAIClientError,
    FailedAIInstructionError,
    GettingURLError,
    InvalidDeviceError,
    NoSuchBenchmarkError,
    ParsingError,
    PipelineCancelled,
    SentimentAnalysisError,
)
from catalog.models import Device
from catalog.types import DeviceLocator


def _fetcher(handler):
    return HttpFetcher(timeout=5, client=httpx.Client(transport=httpx.MockTransport(handler)))


def _html(body):
    return httpx.Response(200, text=f"<html><body>{body}</body></html>",
                          headers={"content-type": "text/html"})


def _gemini_answer(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _ai_client(handler, **kwargs):
    kwargs.setdefault("api_key", "gemini-key")
    kwargs.setdefault("sentiment_api_key", "language-key")
    return AIClient(client=httpx.Client(transport=httpx.MockTransport(handler)), timeout=5, **kwargs)


SPEC_SHEET = {
    "status": True,
    "data": {
        "brand": "Apple",
        "phone_name": "iPhone 15 Pro",
        "release_date": "Released 2023, September 22",
        "specifications": [
            {"title": "Display", "specs": [
                {"key": "Type", "val": ["LTPO Super Retina XDR OLED, 120Hz, HDR10, 1000 nits (typ), 2000 nits (HBM)"]},
                {"key": "Size", "val": ["6.1 inches, 91.3 cm2 (~88.2% screen-to-body ratio)"]},
                {"key": "Resolution", "val": ["1179 x 2556 pixels, 19.5:9 ratio (~461 ppi density)"]},
            ]},
            {"title": "Main Camera", "specs": [{"key": "Triple", "val": ["48 MP, f/1.8, 24mm (wide)"]}]},
            {"title": "Selfie camera", "specs": [{"key": "Single", "val": ["12 MP, f/1.9, 23mm (wide)"]}]},
            {"title": "Battery", "specs": [{"key": "Type", "val": ["Li-Ion 3274 mAh, non-removable"]}]},
        ],
    },
}


def _sheet(**data_overrides):
    sheet = json.loads(json.dumps(SPEC_SHEET))
    sheet["data"].update(data_overrides)
    return sheet


LOCATOR = DeviceLocator(
    name="iPhone 15 Pro",
    detail="https://specs.example.com/apple_iphone_15_pro-12557",
    image="https://img.example.com/iphone-15-pro.jpg",
)


class TestHttpFetcher:
    """Failure mapping of the shared fetcher."""

    def test_http_error_status(self, ctx):
        fetcher = _fetcher(lambda request: httpx.Response(503))

        with pytest.raises(GettingURLError) as exc_info:
            fetcher.get("https://specs.example.com/brands", ctx)

        assert exc_info.value.url == "https://specs.example.com/brands"

    def test_timeout(self, ctx):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(GettingURLError):
            _fetcher(handler).get("https://specs.example.com/brands", ctx)

    def test_invalid_json(self, ctx):
        fetcher = _fetcher(lambda request: httpx.Response(200, text="<html>not json</html>"))

        with pytest.raises(ParsingError):
            fetcher.get_json("https://specs.example.com/brands", ctx)

    def test_get_document(self, ctx):
        fetcher = _fetcher(lambda request: _html('<h1 class="title">Pixel 8</h1>'))

        document = fetcher.get_document("https://example.com/pixel-8", ctx)

        assert document.select_one("h1.title").get_text() == "Pixel 8"

    def test_cancelled_context_sends_nothing(self, ctx):
        handler = Mock(return_value=httpx.Response(200, json={}))
        fetcher = _fetcher(handler)
        ctx.cancel()

        with pytest.raises(PipelineCancelled):
            fetcher.get_json("https://specs.example.com/brands", ctx)

        handler.assert_not_called()


class TestSpecsApiDiscovery:
    """Paging through brand listings."""

    LISTING = BrandListing(
        brand="Samsung",
        directory="samsung-phones-9",
        series="galaxy",
        max_page=3,
        excluded_terms=("tab", "watch", "fold"),
    )

    def test_keeps_series_phones_and_stops_at_empty_page(self, ctx):
        pages = {
            "1": [
                {"phone_name": "Galaxy S24", "detail": "https://specs.example.com/s24", "image": "s24.jpg"},
                {"phone_name": "Galaxy Tab S9", "detail": "https://specs.example.com/tab-s9"},
                {"phone_name": "Galaxy Watch6", "detail": "https://specs.example.com/watch6"},
                {"phone_name": "Galaxy Z Fold5", "detail": "https://specs.example.com/fold5"},
                {"phone_name": "W24", "detail": "https://specs.example.com/w24"},
            ],
            "2": [],
        }
        requested = []

        def handler(request):
            page = request.url.params["page"]
            requested.append((request.url.path, page))
            return httpx.Response(200, json={"status": True, "data": {"phones": pages[page]}})

        discovery = SpecsApiDiscovery(
            _fetcher(handler), base_url="https://specs.example.com/", brands=(self.LISTING,)
        )

        found = discovery.discover_all(ctx)

        assert list(found) == ["Galaxy S24"]
        assert found["Galaxy S24"] == DeviceLocator(
            name="Galaxy S24", detail="https://specs.example.com/s24", image="s24.jpg"
        )
        assert requested == [("/brands/samsung-phones-9", "1"), ("/brands/samsung-phones-9", "2")]

    def test_malformed_listing(self, ctx):
        fetcher = _fetcher(lambda request: httpx.Response(200, json={"status": False}))
        discovery = SpecsApiDiscovery(fetcher, base_url="https://specs.example.com", brands=(self.LISTING,))

        with pytest.raises(ParsingError):
            discovery.discover_all(ctx)


class TestSpecSheetEnricher:
    """Reading the spec sheet into a device."""

    def _enrich(self, sheet, ctx, ai_client=None):
        fetcher = _fetcher(lambda request: httpx.Response(200, json=sheet))
        enricher = SpecSheetEnricher(fetcher, ai_client or Mock(), earliest_year=2019)
        device = Device(name=LOCATOR.name, image=LOCATOR.image)
        enricher.enrich(device, LOCATOR, ctx)
        return device

    def test_fills_device(self, ctx):
        device = self._enrich(SPEC_SHEET, ctx)

        assert device.brand == "Apple"
        assert device.name == "iPhone 15 Pro"
        assert device.release_date == date(2023, 9, 22)
        assert device.battery_capacity == 3274
        assert device.display_size == 6.1
        assert device.display_resolution == "1179 x 2556"
        assert device.pixel_density == pytest.approx(math.hypot(1179, 2556) / 6.1)
        assert device.refresh_rate == 120
        assert device.nits == 2000
        assert device.main_cameras_setup == "Triple"
        assert device.selfie_cameras_setup == "Single"
        assert device.image == LOCATOR.image

    def test_month_only_release_date(self, ctx):
        device = self._enrich(_sheet(release_date="Released 2024, January"), ctx)

        assert device.release_date == date(2024, 1, 1)

    def test_cancelled_device_is_invalid(self, ctx):
        with pytest.raises(InvalidDeviceError):
            self._enrich(_sheet(release_date="Cancelled"), ctx)

    def test_ancient_device_is_invalid(self, ctx):
        with pytest.raises(InvalidDeviceError):
            self._enrich(_sheet(release_date="Released 2017, September 22"), ctx)

    def test_missing_section(self, ctx):
        sheet = _sheet()
        sheet["data"]["specifications"] = [
            section for section in sheet["data"]["specifications"] if section["title"] != "Battery"
        ]

        with pytest.raises(ParsingError, match="Battery"):
            self._enrich(sheet, ctx)

    def test_unreadable_release_date(self, ctx):
        with pytest.raises(ParsingError):
            self._enrich(_sheet(release_date="Coming soon"), ctx)

    def test_nits_from_model_when_sheet_has_none(self, ctx):
        sheet = _sheet()
        sheet["data"]["specifications"][0]["specs"][0]["val"] = ["OLED, 60Hz"]
        ai_client = Mock()
        ai_client.lookup_nits.return_value = 1400

        device = self._enrich(sheet, ctx, ai_client=ai_client)

        assert device.nits == 1400
        assert device.refresh_rate == 60
        ai_client.lookup_nits.assert_called_once_with("Apple iPhone 15 Pro", ctx)


CHART = """
<div id="single-core"><table>
  <tr><th>Device</th><th>Score</th></tr>
  <tr><td class="name"><a href="/a">Samsung Galaxy S24</a></td><td class="score">2,130</td></tr>
  <tr><td class="name"><a href="/b">iPhone 15 Pro</a></td><td class="score">2,890</td></tr>
</table></div>
<div id="multi-core"><table>
  <tr><td class="name"><a href="/a">Samsung Galaxy S24</a></td><td class="score">6,620</td></tr>
  <tr><td class="name"><a href="/b">iPhone 15 Pro</a></td><td class="score">7,210</td></tr>
</table></div>
"""


class TestGeekbenchEnricher:
    """Reading scores off the benchmark charts."""

    def _enricher(self, requested):
        def handler(request):
            requested.append(str(request.url))
            return _html(CHART)

        return GeekbenchEnricher(_fetcher(handler), base_url="https://bench.example.com")

    def test_android_chart_uses_full_name(self, ctx):
        requested = []
        device = Device(brand="Samsung", name="Galaxy S24")

        self._enricher(requested).enrich(device, LOCATOR, ctx)

        assert requested == ["https://bench.example.com/android-benchmarks/"]
        assert device.single_core_score == 2130
        assert device.multi_core_score == 6620
        assert device.is_estimated_benchmark is False

    def test_ios_chart_uses_name(self, ctx):
        requested = []
        device = Device(brand="Apple", name="iPhone 15 Pro")

        self._enricher(requested).enrich(device, LOCATOR, ctx)

        assert requested == ["https://bench.example.com/ios-benchmarks/"]
        assert device.single_core_score == 2890
        assert device.multi_core_score == 7210

    def test_missing_device(self, ctx):
        device = Device(brand="Google", name="Pixel 8")

        with pytest.raises(NoSuchBenchmarkError):
            self._enricher([]).enrich(device, LOCATOR, ctx)

    def test_missing_benchmark_is_not_counted(self):
        assert not NoSuchBenchmarkError("not listed").counted


class TestAIClient:
    """Model answers and their failure modes."""

    def test_classify_price_category(self, ctx):
        captured = {}

        def handler(request):
            captured["key"] = request.url.params["key"]
            captured["payload"] = json.loads(request.content)
            return httpx.Response(200, json=_gemini_answer("HIGH_END\n"))

        category = _ai_client(handler).classify_price_category("Apple iPhone 15 Pro", ctx)

        assert category == PriceCategory.HIGH_END
        assert captured["key"] == "gemini-key"
        assert captured["payload"]["contents"][0]["parts"][0]["text"] == "Apple iPhone 15 Pro"

    def test_unknown_price_category(self, ctx):
        client = _ai_client(lambda request: httpx.Response(200, json=_gemini_answer("PREMIUM")))

        with pytest.raises(FailedAIInstructionError):
            client.classify_price_category("Apple iPhone 15 Pro", ctx)

    def test_ask_bool(self, ctx):
        client = _ai_client(lambda request: httpx.Response(200, json=_gemini_answer('"true"')))

        assert client.is_matching_page("instruction", "Google Pixel 8", "Pixel 8 review", ctx) is True

    def test_ask_bool_rejects_other_answers(self, ctx):
        client = _ai_client(lambda request: httpx.Response(200, json=_gemini_answer("Probably")))

        with pytest.raises(FailedAIInstructionError):
            client.ask_bool("instruction", "prompt", ctx)

    def test_lookup_nits(self, ctx):
        client = _ai_client(lambda request: httpx.Response(200, json=_gemini_answer("1,600 nits")))

        assert client.lookup_nits("Google Pixel 8", ctx) == 1600

    def test_missing_key(self, ctx, settings):
        settings.GEMINI_API_KEY = ""
        client = _ai_client(lambda request: httpx.Response(200), api_key="")

        with pytest.raises(CreatingAIClientError):
            client.generate("instruction", "prompt", ctx)

    def test_network_failure(self, ctx):
        client = _ai_client(lambda request: httpx.Response(500))

        with pytest.raises(AINetworkError):
            client.generate("instruction", "prompt", ctx)

    def test_empty_answer(self, ctx):
        client = _ai_client(lambda request: httpx.Response(200, json={"candidates": []}))

        with pytest.raises(FailedAIInstructionError):
            client.generate("instruction", "prompt", ctx)

    def test_analyze_sentiment(self, ctx):
        client = _ai_client(lambda request: httpx.Response(
            200, json={"documentSentiment": {"score": 0.6, "magnitude": 4.2}}
        ))

        result = client.analyze_sentiment("A superb phone with a great camera.", ctx)

        assert result == SentimentResult(score=0.6, magnitude=4.2)

    def test_sentiment_failure(self, ctx):
        client = _ai_client(lambda request: httpx.Response(503))

        with pytest.raises(SentimentAnalysisError):
            client.analyze_sentiment("text", ctx)


def _site_handler(search_items, pages):
    """Serve custom search results and the pages they link to."""

    def handler(request):
        if request.url.path == "/customsearch/v1":
            return httpx.Response(200, json={"items": search_items(request.url.params["q"])})
        url = str(request.url)
        if url in pages:
            return _html(pages[url])
        return httpx.Response(404)

    return handler


class TestPriceEnricher:
    """Locating and reading the price page."""

    def _enricher(self, handler, ai_client):
        fetcher = _fetcher(handler)
        return PriceEnricher(
            fetcher,
            CustomSearchClient(fetcher, api_key="search-key"),
            ai_client,
            engine_id="price-engine",
            site_domain="zap.co.il",
        )

    def test_reads_price_from_confirmed_page(self, ctx):
        items = lambda query: [
            {"link": "https://other.example.com/pixel-8", "title": "Pixel 8"},
            {"link": "https://www.zap.co.il/model/pixel-8-case", "title": "Pixel 8 case"},
            {"link": "https://www.zap.co.il/model/pixel-8", "title": "Google Pixel 8"},
        ]
        pages = {"https://www.zap.co.il/model/pixel-8": '<h2 class="price-value total">3,499 ₪</h2>'}
        ai_client = Mock()
        ai_client.is_matching_page.side_effect = [False, True]
        device = Device(brand="Google", name="Pixel 8")

        self._enricher(_site_handler(items, pages), ai_client).enrich(device, LOCATOR, ctx)

        assert device.real_price == 3499
        # Off-domain hits are never shown to the model
        assert ai_client.is_matching_page.call_count == 2

    def test_no_confirmed_page(self, ctx):
        items = lambda query: [{"link": "https://www.zap.co.il/model/pixel-8", "title": "Pixel 8"}]
        ai_client = Mock()
        ai_client.is_matching_page.return_value = False

        with pytest.raises(FailedAIInstructionError):
            self._enricher(_site_handler(items, {}), ai_client).enrich(
                Device(brand="Google", name="Pixel 8"), LOCATOR, ctx
            )

    def test_page_without_price(self, ctx):
        items = lambda query: [{"link": "https://www.zap.co.il/model/pixel-8", "title": "Pixel 8"}]
        pages = {"https://www.zap.co.il/model/pixel-8": "<h2>Out of stock</h2>"}
        ai_client = Mock()
        ai_client.is_matching_page.return_value = True

        with pytest.raises(ParsingError):
            self._enricher(_site_handler(items, pages), ai_client).enrich(
                Device(brand="Google", name="Pixel 8"), LOCATOR, ctx
            )


class TestPriceCategoryEnricher:
    def test_sets_category(self, ctx):
        ai_client = Mock()
        ai_client.classify_price_category.return_value = PriceCategory.HIGH_MID_RANGE
        device = Device(brand="Google", name="Pixel 8")

        PriceCategoryEnricher(ai_client).enrich(device, LOCATOR, ctx)

        assert device.price_category == PriceCategory.HIGH_MID_RANGE
        ai_client.classify_price_category.assert_called_once_with("Google Pixel 8", ctx)


CNET_PAGE = """
<div data-cy="reviewRating" class="c-shortcodeReviewRedesign_rating g-text-bold">8.5</div>
<p>The Pixel 8 is a great phone.</p><p>Battery life is solid.</p>
"""
TOMS_PAGE = """
<span class="chunk rating" aria-label="Rating: 4.5 out of 5"></span>
<p>Google's best small phone yet.</p>
"""


class TestReviewSources:
    """Reading text and ratings from each review site."""

    def test_cnet_rating_out_of_ten(self):
        from bs4 import BeautifulSoup

        document = BeautifulSoup(CNET_PAGE, "html.parser")

        text, stars = CnetReviewSource().review(document, "Google Pixel 8")

        assert stars == pytest.approx(4.25)
        assert text == "The Pixel 8 is a great phone. Battery life is solid."

    def test_tomsguide_rating(self):
        from bs4 import BeautifulSoup

        document = BeautifulSoup(TOMS_PAGE, "html.parser")

        assert TomsGuideReviewSource().stars(document, "Google Pixel 8") == 4.5

    def test_page_without_rating(self):
        from bs4 import BeautifulSoup

        document = BeautifulSoup("<p>Just text</p>", "html.parser")

        assert CnetReviewSource().stars(document, "Google Pixel 8") is None
        assert TomsGuideReviewSource().stars(document, "Google Pixel 8") is None

    def test_page_without_text(self):
        from bs4 import BeautifulSoup

        with pytest.raises(ParsingError):
            CnetReviewSource().review_text(BeautifulSoup("<div></div>", "html.parser"), "Google Pixel 8")

    def test_build_review_sources(self):
        sources = build_review_sources(["tomsguide"])

        assert [source.name for source in sources] == ["tomsguide"]

    def test_unknown_review_source(self):
        with pytest.raises(ValueError):
            build_review_sources(["engadget"])


class TestReviewEnricher:
    """Averaging sentiment across review sources."""

    def test_averages_sources(self, ctx):
        def items(query):
            if "cnet.com" in query:
                return [{"link": "https://www.cnet.com/reviews/pixel-8", "title": "Pixel 8 review"}]
            return [{"link": "https://www.tomsguide.com/reviews/pixel-8", "title": "Pixel 8 review"}]

        pages = {
            "https://www.cnet.com/reviews/pixel-8": CNET_PAGE,
            "https://www.tomsguide.com/reviews/pixel-8": TOMS_PAGE,
        }
        fetcher = _fetcher(_site_handler(items, pages))
        ai_client = Mock()
        ai_client.is_matching_page.return_value = True
        ai_client.analyze_sentiment.side_effect = [
            SentimentResult(score=0.5, magnitude=4.0),
            SentimentResult(score=0.3, magnitude=2.0),
        ]
        enricher = ReviewEnricher(
            fetcher,
            CustomSearchClient(fetcher, api_key="search-key"),
            ai_client,
            [CnetReviewSource(), TomsGuideReviewSource()],
            engine_id="review-engine",
        )
        device = Device(brand="Google", name="Pixel 8")

        enricher.enrich(device, LOCATOR, ctx)

        # cnet: 0.5 * 0.6 + 0.625 * 0.4 = 0.55, tomsguide: 0.3 * 0.6 + 0.75 * 0.4 = 0.48
        assert device.review_sentiment == pytest.approx(0.515)
        assert device.review_magnitude == pytest.approx(3.0)

    def test_needs_a_source(self):
        with pytest.raises(ValueError):
            ReviewEnricher(Mock(), Mock(), Mock(), [])


class TestCollaborators:
    def test_close_closes_resources(self):
        fetcher, ai_client = Mock(), Mock()
        collaborators = Collaborators(
            discovery=Mock(), specs=Mock(), price=Mock(), price_category=Mock(),
            benchmark=Mock(), review=Mock(), closeables=[fetcher, ai_client],
        )

        collaborators.close()

        fetcher.close.assert_called_once()
        ai_client.close.assert_called_once()
