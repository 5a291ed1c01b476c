import pytest
import responses

from zpscan.goby import GobyPoc, GobyRule
from zpscan.pocurl import PocResult
from zpscan.pocscan import (
    ExpInput,
    PocInput,
    PocScanner,
    parse_exp_input,
    parse_poc_input,
)


def _step(uri, value, method="GET", data=""):
    return {
        "Request": {"method": method, "uri": uri, "data": data},
        "ResponseTest": {
            "operation": "AND",
            "checks": [{"operation": "contains", "variable": "$body", "value": value}],
        },
    }


def _es_poc():
    return GobyPoc.from_dict(
        {
            "Name": "ElasticSearch Unauthorized",
            "Level": "2",
            "ScanSteps": ["AND", _step("/_cat/indices", "green open")],
        }
    )


def test_parse_poc_input():
    inputs = parse_poc_input(["http://127.0.0.1:9200|elasticsearch"])
    assert inputs == [PocInput(target="http://127.0.0.1:9200", poc_tags=["elasticsearch"])]


def test_parse_poc_input_several_tags_and_whitespace():
    inputs = parse_poc_input(["  http://127.0.0.1:8092|a,b \n"])
    assert inputs == [PocInput(target="http://127.0.0.1:8092", poc_tags=["a", "b"])]


def test_parse_poc_input_requires_pipe():
    with pytest.raises(ValueError):
        parse_poc_input(["http://127.0.0.1:9200"])


def test_parse_poc_input_skips_extra_pipes():
    assert parse_poc_input(["http://x|a|b"]) == []


def test_parse_exp_input():
    inputs = parse_exp_input(["http://127.0.0.1:9200|CVE-2015-1427"], "id")
    assert inputs == [
        ExpInput(target="http://127.0.0.1:9200", poc_name="CVE-2015-1427", payload="id")
    ]


def test_parse_exp_input_requires_pipe():
    with pytest.raises(ValueError):
        parse_exp_input(["http://127.0.0.1:9200"], "id")


def test_scan_success():
    scanner = PocScanner([_es_poc()], timeout=10)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "http://127.0.0.1:9200/_cat/indices", body="green open index")
        results = scanner.scan(
            PocInput(target="http://127.0.0.1:9200", poc_tags=["elasticsearch"])
        )
    assert results == [
        PocResult(
            target="http://127.0.0.1:9200",
            poc_tag="elasticsearch",
            source="goby",
            level="2",
            poc_name="ElasticSearch Unauthorized",
        )
    ]


def test_scan_fail_with_unknown_tag():
    scanner = PocScanner([_es_poc()], timeout=10)
    with responses.RequestsMock() as rsps:
        results = scanner.scan(PocInput(target="http://127.0.0.1:8092", poc_tags=["11"]))
        assert len(rsps.calls) == 0
    assert results == []


def test_scan_check_not_satisfied():
    scanner = PocScanner([_es_poc()])
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "http://127.0.0.1:9200/_cat/indices", body="forbidden")
        assert scanner.run_goby("http://127.0.0.1:9200", "elasticsearch") == []


def test_run_goby_survives_connection_errors():
    scanner = PocScanner([_es_poc()])
    with responses.RequestsMock(assert_all_requests_are_fired=False):
        assert scanner.run_goby("http://127.0.0.1:9200", "elasticsearch") == []


def test_scan_goby_or_needs_one_step():
    poc = GobyPoc.from_dict(
        {"Name": "x", "ScanSteps": ["OR", _step("/a", "yes"), _step("/b", "yes")]}
    )
    scanner = PocScanner([poc])
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "http://127.0.0.1:9200/a", body="no")
        rsps.add(responses.GET, "http://127.0.0.1:9200/b", body="yes")
        assert scanner.scan_goby("http://127.0.0.1:9200", poc) is True


def test_scan_goby_and_needs_every_step():
    poc = GobyPoc.from_dict(
        {"Name": "x", "ScanSteps": ["AND", _step("/a", "yes"), _step("/b", "yes")]}
    )
    scanner = PocScanner([poc])
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "http://127.0.0.1:9200/a", body="no")
        rsps.add(responses.GET, "http://127.0.0.1:9200/b", body="yes")
        assert scanner.scan_goby("http://127.0.0.1:9200", poc) is False


def test_scan_goby_without_operation_is_false():
    poc = GobyPoc.from_dict({"Name": "x", "ScanSteps": [_step("/a", "yes")]})
    scanner = PocScanner([poc])
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "http://127.0.0.1:9200/a", body="yes")
        assert scanner.scan_goby("http://127.0.0.1:9200", poc) is False


def test_scan_goby_malformed_step():
    poc = GobyPoc.from_dict({"Name": "x", "ScanSteps": ["AND", 5]})
    with pytest.raises(ValueError):
        PocScanner([poc]).scan_goby("http://127.0.0.1:9200", poc)


def test_do_request_escapes_and_sends_body():
    rule = GobyRule(method="POST", uri="/a+b c", data="x=1")
    scanner = PocScanner([])
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            "http://127.0.0.1:9200/a%20b%20c",
            body="done",
            headers={"Server": "demo"},
            content_type="text/plain",
        )
        resp = scanner.do_request("http://127.0.0.1:9200/ignored/path", rule)
        sent = rsps.calls[0].request
    assert sent.url == "http://127.0.0.1:9200/a%20b%20c"
    body = sent.body.decode() if isinstance(sent.body, bytes) else sent.body
    assert body == "x=1"
    assert resp.status == 200
    assert resp.body == b"done"
    assert resp.headers["Server"] == "demo"
    assert resp.content_type.startswith("text/plain")
    assert resp.url.port == "9200"
    assert resp.url.path == "/ignored/path"


def test_run_collects_all_inputs():
    scanner = PocScanner([_es_poc()])
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "http://127.0.0.1:9200/_cat/indices", body="green open")
        rsps.add(responses.GET, "http://127.0.0.1:9201/_cat/indices", body="green open")
        results = scanner.run(
            [
                PocInput(target="http://127.0.0.1:9200", poc_tags=["elasticsearch"]),
                PocInput(target="http://127.0.0.1:9201", poc_tags=["elasticsearch"]),
            ]
        )
    assert [result.target for result in results] == [
        "http://127.0.0.1:9200",
        "http://127.0.0.1:9201",
    ]