"""
Tests for User-Agent classification.
"""
import pytest

from linkly.services.user_agent import UNKNOWN, UserAgentInfo, classify_user_agent

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
EDGE_WINDOWS = CHROME_WINDOWS + " Edg/120.0.2210.91"
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1"
)
SAFARI_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Safari/605.1.15"
)
CHROME_ANDROID_PHONE = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
SAMSUNG_TABLET = (
    "Mozilla/5.0 (Linux; Android 13; SM-X700) AppleWebKit/537.36 "
    "(KHTML, like Gecko) SamsungBrowser/23.0 Chrome/115.0.0.0 Safari/537.36"
)
FIREFOX_LINUX = "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
OPERA_MAC = SAFARI_MAC.replace("Version/17.1 Safari/605.1.15", "Chrome/119.0 Safari/537.36 OPR/105.0")
IPAD_CHROME = (
    "Mozilla/5.0 (iPad; CPU OS 17_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) CriOS/120.0.6099.119 Mobile/15E148 Safari/604.1"
)
CHROMEBOOK = (
    "Mozilla/5.0 (X11; CrOS x86_64 14541.0.0) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
IE11 = "Mozilla/5.0 (Windows NT 10.0; WOW64; Trident/7.0; rv:11.0) like Gecko"
GOOGLEBOT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"


@pytest.mark.parametrize(
    "ua, expected",
    [
        (CHROME_WINDOWS, UserAgentInfo("Chrome", "Windows", "Desktop")),
        (EDGE_WINDOWS, UserAgentInfo("Edge", "Windows", "Desktop")),
        (SAFARI_IPHONE, UserAgentInfo("Safari", "iOS", "Mobile")),
        (SAFARI_MAC, UserAgentInfo("Safari", "macOS", "Desktop")),
        (CHROME_ANDROID_PHONE, UserAgentInfo("Chrome", "Android", "Mobile")),
        (SAMSUNG_TABLET, UserAgentInfo("Samsung Internet", "Android", "Tablet")),
        (FIREFOX_LINUX, UserAgentInfo("Firefox", "Linux", "Desktop")),
        (OPERA_MAC, UserAgentInfo("Opera", "macOS", "Desktop")),
        (IPAD_CHROME, UserAgentInfo("Chrome", "iOS", "Tablet")),
        (CHROMEBOOK, UserAgentInfo("Chrome", "ChromeOS", "Desktop")),
        (IE11, UserAgentInfo("Internet Explorer", "Windows", "Desktop")),
    ],
)
def test_classifies_common_browsers(ua, expected):
    assert classify_user_agent(ua) == expected


def test_bot_is_detected():
    info = classify_user_agent(GOOGLEBOT)
    assert info.device_type == "Bot"
    assert info.browser == UNKNOWN


def test_curl_is_a_bot():
    assert classify_user_agent("curl/8.4.0").device_type == "Bot"


@pytest.mark.parametrize("ua", [None, "", "   "])
def test_missing_user_agent_is_all_unknown(ua):
    assert classify_user_agent(ua) == UserAgentInfo(UNKNOWN, UNKNOWN, UNKNOWN)


def test_garbage_user_agent_is_unknown():
    info = classify_user_agent("definitely-not-a-browser")
    assert info == UserAgentInfo(UNKNOWN, UNKNOWN, UNKNOWN)
