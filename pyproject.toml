[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "marginalia"
version = "1.0.0"
description = "A small self-hosted service for collecting articles worth reading and publishing them as a web page and an RSS feed."
requires-python = ">=3.10"
keywords = ["rss", "bookmarks", "reading-list", "self-hosted", "feed", "wsgi"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content :: News/Diary",
]
dependencies = [
    "werkzeug>=3.0",
    "jinja2>=3.1",
    "requests>=2.31",
    "beautifulsoup4>=4.12",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "responses>=0.24",
]

[project.scripts]
marginalia = "marginalia.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["marginalia"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
