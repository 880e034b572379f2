[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "corochain"
version = "0.1.0"
description = "Coroutine futures with all/any combinators, timers and a poller-driven event loop"
requires-python = ">=3.10"
dependencies = []
keywords = ["coroutines", "futures", "event-loop", "timers", "poller", "selectors"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["corochain"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
