[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zpscan"
version = "0.1.0"
description = "Reconnaissance building blocks: IP range expansion, QQwry lookup, service and web fingerprinting, directory discovery and Goby PoC checks"
requires-python = ">=3.10"
keywords = [
    "security",
    "reconnaissance",
    "fingerprint",
    "nmap-probes",
    "web-scanning",
    "favicon-hash",
    "qqwry",
    "goby",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Information Technology",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: System :: Networking :: Monitoring",
]
dependencies = [
    "requests>=2.28",
    "beautifulsoup4>=4.11",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["zpscan"]

[tool.hatch.build.targets.sdist]
include = ["zpscan", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
