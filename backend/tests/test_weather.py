import asyncio
import unittest

import httpx

from weather import (
    WeatherLookupError,
    WeatherReport,
    can_go_outside,
    format_temperature,
    get_weather,
)


def _report(
    *,
    feels_like: float = 20,
    humidity: float = 50,
    condition: str = "Clear",
    wind: float = 3,
) -> WeatherReport:
    return WeatherReport.model_validate(
        {
            "main": {"feels_like": feels_like, "humidity": humidity},
            "weather": [{"main": condition}],
            "wind": {"speed": wind},
        }
    )


class CanGoOutsideTests(unittest.TestCase):
    def test_pleasant_weather_allows_going_outside(self) -> None:
        self.assertTrue(can_go_outside(_report()))

    def test_each_rule_can_veto(self) -> None:
        self.assertFalse(can_go_outside(_report(feels_like=25)))
        self.assertFalse(can_go_outside(_report(humidity=80)))
        self.assertFalse(can_go_outside(_report(condition="Rain")))
        self.assertFalse(can_go_outside(_report(wind=5)))

    def test_drizzle_is_not_rain(self) -> None:
        self.assertTrue(can_go_outside(_report(condition="Drizzle")))

    def test_format_temperature(self) -> None:
        self.assertEqual(format_temperature(18.0), "18")
        self.assertEqual(format_temperature(18.5), "18.5")
        self.assertEqual(format_temperature(-3.25), "-3.25")


class GetWeatherTests(unittest.TestCase):
    def _run(self, coro):
        return asyncio.run(coro)

    def _fetch(self, handler, city: str = "Paris", country: str = "France"):
        async def run():
            async with httpx.AsyncClient(
                transport=httpx.MockTransport(handler)
            ) as client:
                return await get_weather(city, country, api_key="secret", client=client)

        return self._run(run())

    def test_request_uses_metric_units_and_location(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "main": {"feels_like": 18, "humidity": 60},
                    "weather": [{"main": "Clouds"}],
                    "wind": {"speed": 4.1},
                },
            )

        report = self._fetch(handler)

        self.assertEqual(report.main.feels_like, 18)
        self.assertEqual(report.weather[0].main, "Clouds")
        params = seen[0].url.params
        self.assertEqual(params["q"], "Paris,France")
        self.assertEqual(params["units"], "metric")
        self.assertEqual(params["appid"], "secret")

    def test_missing_location_is_rejected_without_request(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
            raise AssertionError("no request expected")

        with self.assertRaises(WeatherLookupError):
            self._fetch(handler, city="", country="France")

    def test_http_error_is_wrapped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "city not found"})

        with self.assertRaises(WeatherLookupError) as ctx:
            self._fetch(handler)
        self.assertIn("404", str(ctx.exception))

    def test_unexpected_payload_is_wrapped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"main": {}})

        with self.assertRaises(WeatherLookupError):
            self._fetch(handler)


if __name__ == "__main__":
    unittest.main()
