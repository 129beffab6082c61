[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "termchat"
version = "0.1.0"
description = "A small multi-user terminal chat room: a TCP server that relays coloured messages and a line-based client."
requires-python = ">=3.10"
dependencies = []
keywords = ["chat", "terminal", "tcp", "chatroom", "sockets"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
termchat-server = "termchat.server:main"
termchat-client = "termchat.client:main"

[tool.hatch.build.targets.wheel]
packages = ["termchat"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
