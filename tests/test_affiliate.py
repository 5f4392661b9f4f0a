from urllib.parse import parse_qs, urlsplit

import pytest

from wishly.affiliate import add_affiliate_tag, extract_product_info


def query_of(url):
    return parse_qs(urlsplit(url).query)


def test_adds_tag_to_amazon_product_link():
    url = add_affiliate_tag("https://www.amazon.com/Fancy-Mug/dp/B07XYZ1234", "wishly-20")
    assert url.startswith("https://www.amazon.com/Fancy-Mug/dp/B07XYZ1234?")
    assert query_of(url)["tag"] == ["wishly-20"]


def test_replaces_existing_tag_and_keeps_other_params():
    url = add_affiliate_tag("https://www.amazon.com/dp/B07XYZ1234?th=1&tag=someone-else", "wishly-20")
    q = query_of(url)
    assert q["tag"] == ["wishly-20"]
    assert q["th"] == ["1"]


def test_regional_amazon_hosts_are_tagged():
    url = add_affiliate_tag("https://www.amazon.co.uk/dp/B07XYZ1234", "wishly-21")
    assert query_of(url)["tag"] == ["wishly-21"]


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://amzn.to/3abcd", "https://amzn.to/3abcd?tag=wishly-20"),
        ("https://a.co/d/xyz?ref=x", "https://a.co/d/xyz?ref=x&tag=wishly-20"),
    ],
)
def test_short_links_get_tag_appended(url, expected):
    assert add_affiliate_tag(url, "wishly-20") == expected


def test_other_hosts_are_untouched():
    url = "https://www.etsy.com/listing/123/mug"
    assert add_affiliate_tag(url, "wishly-20") == url


def test_schemeless_amazon_link_gets_tag_appended():
    assert add_affiliate_tag("amazon.com/dp/B07XYZ1234", "wishly-20") == "amazon.com/dp/B07XYZ1234?tag=wishly-20"


def test_blank_url_and_blank_tag():
    assert add_affiliate_tag("   ", "wishly-20") == ""
    assert add_affiliate_tag("https://www.amazon.com/dp/B07XYZ1234", "") == "https://www.amazon.com/dp/B07XYZ1234"


def test_lookalike_host_is_not_tagged():
    url = "https://notamazon.example.com/dp/B07XYZ1234"
    assert add_affiliate_tag(url, "wishly-20") == url


def test_extracts_asin_and_name_from_dp_link():
    info = extract_product_info("https://www.amazon.com/Stainless-Steel-Water-Bottle/dp/b07xyz1234/ref=sr_1_1")
    assert info.asin == "B07XYZ1234"
    assert info.name == "Stainless Steel Water Bottle"


def test_extracts_asin_from_gp_product_link():
    info = extract_product_info("https://www.amazon.com/gp/product/B00TESTASN")
    assert info.asin == "B00TESTASN"
    assert info.name == ""


def test_extract_without_asin():
    info = extract_product_info("https://www.amazon.com/s?k=socks")
    assert info.asin is None
    assert info.name == ""


@pytest.mark.parametrize(
    "url",
    [
        "https://www.costa.co/menu",
        "https://panda.co/d/xyz",
        "https://example.com/redirect?to=amzn.to/3abcd",
        "www.costa.co/menu",
    ],
)
def test_hosts_that_only_resemble_short_links_are_untouched(url):
    assert add_affiliate_tag(url, "wishly-20") == url


def test_schemeless_short_link_is_tagged():
    assert add_affiliate_tag("amzn.to/3abcd", "wishly-20") == "amzn.to/3abcd?tag=wishly-20"
