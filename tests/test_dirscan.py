import pytest
import responses

from zpscan.dirscan import (
    EXTENSIONS,
    DirInput,
    DirOptions,
    DirResult,
    DirScanner,
    generate_dirs,
    generate_domain_dirs,
    generate_ip_dirs,
)


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def test_generate_ip_dirs():
    results = generate_ip_dirs("106.75.26.139")
    assert len(results) == len(EXTENSIONS)
    assert results[0] == "106.75.26.139.zip"
    assert results[-1] == "106.75.26.139.dll"
    assert all(result.startswith("106.75.26.139.") for result in results)


def test_generate_domain_dirs():
    results = generate_domain_dirs("cpms.nbcb.com.cn")
    assert results[0] == "cpms"
    assert results[1] == "cpms.zip"
    # four labels give ten runs of consecutive labels
    assert len(results) == 1 + 10 * len(EXTENSIONS)
    assert "cpms.nbcb.com.cn.zip" in results
    assert "nbcb.com.tar.gz" in results
    assert "cn.dll" in results
    assert "cpms.com.zip" not in results


def test_generate_dirs_picks_ip_or_domain():
    assert generate_dirs("http://10.0.0.1:8080") == generate_ip_dirs("10.0.0.1")
    assert generate_dirs("https://example.com") == generate_domain_dirs("example.com")
    assert generate_dirs("example.com:443") == generate_domain_dirs("example.com")


def test_results_order_by_length():
    items = [DirResult("a", 200, 30), DirResult("b", 200, 10), DirResult("c", 200, 20)]
    assert [item.url for item in sorted(items)] == ["b", "c", "a"]


def _scanner(**kwargs):
    return DirScanner(DirOptions(threads=3, **kwargs))


def test_scan_filters_status_and_mime(mocked):
    mocked.add(responses.GET, "http://example.com/", body="home")
    mocked.add(responses.GET, "http://example.com/admin", body="admin page")
    mocked.add(responses.GET, "http://example.com/backup.zip", body="not zip", content_type="text/html")
    mocked.add(responses.GET, "http://example.com/site.zip", body=b"PK-archive", content_type="application/zip")
    mocked.add(responses.GET, "http://example.com/missing", status=404, body="gone")
    mocked.add(responses.GET, "http://example.com/empty", body="")
    target = DirInput("example.com", ["admin", "/backup.zip", "site.zip", "missing", "empty", "dead"])
    results = _scanner().scan(target)
    assert [(r.url, r.status_code) for r in results] == [
        ("http://example.com/admin", 200),
        ("http://example.com/site.zip", 200),
    ]
    assert results[0].content_length == len("admin page")
    assert all(r.content_type == "" for r in results)


def test_scan_drops_repeated_lengths(mocked):
    mocked.add(responses.GET, "http://example.com/", body="home")
    mocked.add(responses.GET, "http://example.com/a", body="same")
    mocked.add(responses.GET, "http://example.com/b", body="same")
    mocked.add(responses.GET, "http://example.com/c", body="different")
    results = _scanner(max_matched=2).scan(DirInput("http://example.com", ["a", "b", "c"]))
    assert [r.url for r in results] == ["http://example.com/c"]


def test_scan_dead_target_returns_nothing(mocked):
    assert _scanner().scan(DirInput("dead.example.com", ["admin"])) == []


def test_request_reports_title_and_type(mocked):
    mocked.add(responses.GET, "http://example.com/p", body="<title>Page</title>", content_type="text/html")
    result = _scanner().request("http://example.com/p")
    assert result.title == "Page"
    assert result.content_type == "text/html"
    assert result.status_code == 200


def test_run_adds_generated_dirs_without_duplicates(mocked):
    mocked.add(responses.GET, "http://example.com/", body="home")
    mocked.add(responses.GET, "http://example.com/admin", body="admin page")
    mocked.add(responses.GET, "http://example.com/example.zip", body=b"PK-data", content_type="application/zip")
    target = DirInput("example.com", ["admin", "admin", "example.zip"])
    results = _scanner().run([target])
    assert [r.url for r in results] == [
        "http://example.com/admin",
        "http://example.com/example.zip",
    ]
    assert len(target.dirs) == len(set(target.dirs))
    assert "example.com.zip" in target.dirs