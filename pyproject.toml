[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "proxypool"
version = "0.1.0"
description = "Collect free HTTP proxies from public lists, measure their quality and keep the working ones in SQLite or MySQL."
requires-python = ">=3.11"
keywords = ["proxy", "proxy-pool", "http-proxy", "scraper", "verification", "sqlite", "mysql", "asyncio"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: Database",
]
dependencies = [
    "httpx>=0.27",
    "aiosqlite>=0.20",
    "pymysql>=1.1",
]

[project.optional-dependencies]
test = [
    "pytest>=8.0",
    "pytest-asyncio>=0.23",
]

[project.scripts]
proxypool = "proxypool.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["proxypool"]

[tool.hatch.build.targets.sdist]
include = ["proxypool", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP", "SIM"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
warn_redundant_casts = true
check_untyped_defs = true
