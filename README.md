# zpscan

A library of reconnaissance building blocks for authorised security
assessments. Each module works on its own:

| Module | What it does |
| --- | --- |
| `zpscan.iprange` | Expand single addresses, CIDR blocks and dash ranges into address lists |
| `zpscan.qqwry` | Look up country and area of an IPv4 address in a QQwry (`qqwry.dat`) file |
| `zpscan.portprobe` | Parse an nmap service-probe database and match banners against it |
| `zpscan.portscan` | Identify the service on open TCP ports, directly or through a SOCKS5 proxy |
| `zpscan.cdn` | Decide whether an answer belongs to a CDN; detect wildcard DNS |
| `zpscan.title`, `zpscan.jsjump`, `zpscan.iconhash` | Page titles, meta-refresh/JavaScript redirects, favicon hashes |
| `zpscan.finger`, `zpscan.webresult` | Keyword and icon-hash fingerprint rules; result records and rendering |
| `zpscan.webscan` | HTTP liveness checks and full web probing (`WebScanner`) |
| `zpscan.dirscan` | Wordlists derived from the target name and directory scanning (`DirScanner`) |
| `zpscan.pocurl`, `zpscan.goby`, `zpscan.pocscan` | Goby-style JSON PoC loading and evaluation (`PocScanner`) |

Only scan systems you are permitted to test.

## Installing

```
pip install .
pip install ".[test]"   # with pytest and responses for the test suite
```

## Expanding address ranges

```python
from zpscan.iprange import parse_ip

parse_ip("192.168.1.1-3")
# ['192.168.1.1', '192.168.1.2', '192.168.1.3']

parse_ip("10.0.0.0/30")
# ['10.0.0.0', '10.0.0.1', '10.0.0.2', '10.0.0.3']
```

A range may also be written in full, such as `192.168.1.1-192.168.2.5`; every
octet of the start must not exceed the matching octet of the end. A malformed
range yields an empty list; a malformed CIDR block raises `ValueError`.

## Geolocation

```python
from zpscan.qqwry import QQwry

db = QQwry.from_file("qqwry.dat")
location = db.find("8.8.8.8")
print(location.country, location.area)
```

`find` raises `ValueError` for anything that is not an IPv4 address or cannot
be found in the file. The database file must already be on disk.

## Service fingerprinting

```python
from pathlib import Path

from zpscan.portprobe import NmapProbe
from zpscan.portscan import Engine, scan_with_probe

nmap = NmapProbe.parse(Path("nmap-service-probes").read_text())
print(nmap.count(), "match rules loaded")

result = scan_with_probe(nmap, "192.0.2.10", "22", "", 5)
print(result.addr, result.service_name, result.vendor_product, result.version)

engine = Engine(nmap, proxy="", timeout=5)
found = engine.run({"192.0.2.10": [22, 80]})
```

Probes are tried in tiers: those listing the port as a default, then rarity 1,
then rarity below 6, then the rest; the probes of a tier run concurrently.
`Engine.run` returns a `PortResult` only for ports whose service was
recognised. A proxy, when given, is a SOCKS5 server as `host:port`.

## Web fingerprinting

```python
from pathlib import Path

from zpscan.iconhash import mmh3_hash32, stand_base64
from zpscan.title import get_title

get_title("<html><head><title>Welcome</title></head></html>")
# 'Welcome'

icon_hash = mmh3_hash32(stand_base64(Path("favicon.ico").read_bytes()))
```

Fingerprint rules load from their JSON form with `FingerRule.from_dict`, and
`match_fingers` returns the rules a response satisfies.

`zpscan.webscan.WebScanner(WebOptions(...))` ties these together. For each URL
it fetches the page (switching to HTTPS when the HTTP request fails or the
server says it needs TLS), follows up to three meta-refresh or JavaScript
redirects, and returns `WebResult` records with status code, content length,
title, favicon URL and hash, and matched fingerprints. Results matching more
than five fingerprints are dropped as likely honeypots.
`zpscan.webresult.format_result` renders a record as one line, with or
without ANSI colours. `check_alive` returns the final URL of every
`host:port` that answers over HTTP or HTTPS.

## Directory discovery

```python
from zpscan.dirscan import DirInput, DirOptions, DirScanner, generate_ip_dirs

generate_ip_dirs("192.0.2.10")[:3]
# ['192.0.2.10.zip', '192.0.2.10.7z', '192.0.2.10.rar']

scanner = DirScanner(DirOptions(match_status=[200], max_matched=5))
results = scanner.run([DirInput("http://192.0.2.10", ["admin", "backup"])])
```

`DirScanner.run` adds names derived from the target's host to each wordlist,
requests every path, and keeps responses that are not empty, whose status code
is in `match_status`, whose content type fits an archive-like extension, and
whose content length was seen fewer than `max_matched` times.

## PoC checks

```python
from zpscan.goby import load_all_pocs
from zpscan.pocscan import PocScanner, parse_poc_input

pocs = load_all_pocs("pocs/goby")
scanner = PocScanner(pocs, proxy="", timeout=10)
results = scanner.run(parse_poc_input(["http://192.0.2.10:9200|elasticsearch"]))
```

`load_all_pocs` reads every `.json` file under a directory. Each input line is
`target|tag[,tag...]`; a line without `|` raises `ValueError`. For each tag,
the PoCs whose lower-cased name contains the tag are run, and those whose
response checks pass are reported as `PocResult` records.

## What this package does not do

- It has no command-line program; it is used from Python.
- It does not discover open ports; it fingerprints ports you already know are
  open.
- It does not enumerate subdomains or resolve them in bulk; it only checks
  single answers for CDNs and tests a domain for wildcard DNS.
- It does not download the QQwry database.
- Web results carry no technology detection: `WebResult.wappalyzer` stays
  empty, and fingerprint rules on the `cert` location never match.
- Only Goby-style JSON PoCs are evaluated. `parse_exp_input` parses exploit
  inputs, but nothing in the package runs exploits.