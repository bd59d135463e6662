[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nodelay"
version = "0.1.0"
description = "Building blocks for a Minecraft and TLS relay proxy: packet framing, handshake and MOTD handling, SNI sniffing, access lists and per-player traffic quotas."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "proxy",
    "minecraft",
    "tcp",
    "relay",
    "tls",
    "sni",
    "varint",
    "traffic",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: Games/Entertainment",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["nodelay"]

[tool.hatch.build.targets.sdist]
include = ["nodelay", "tests", "README.md"]

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
warn_redundant_casts = true
