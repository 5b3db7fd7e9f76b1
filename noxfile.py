from __future__ import annotations

import os
import pathlib
import secrets

import nox

ROOT = pathlib.Path(__file__).parent

nox.options.sessions = ["lint", "typecheck", "tests", "property", "coverage"]
nox.options.reuse_existing_virtualenvs = False


@nox.session(python=["3.10", "3.11", "3.12"])
def tests(session: nox.Session) -> None:
    session.install("coverage[toml]", "pytest", "hypothesis", ".")
    session.env["PYTHONHASHSEED"] = os.environ.get(
        "PYTHONHASHSEED", str(secrets.randbits(32))
    )
    session.run(
        "coverage", "run", "--parallel-mode", "-m", "pytest", "-vv", "--strict-markers", *session.posargs
    )


@nox.session(python=["3.10", "3.11", "3.12"])
def property(session: nox.Session) -> None:
    session.install("pytest", "hypothesis", ".")
    session.env["PYTHONHASHSEED"] = os.environ.get(
        "PYTHONHASHSEED", str(secrets.randbits(32))
    )
    session.run("pytest", "-vv", "-m", "property", "--strict-markers", *session.posargs)


@nox.session(python=["3.10", "3.11", "3.12"])
def lint(session: nox.Session) -> None:
    session.install("ruff")
    session.run("ruff", "check", "symbfile", "tests", "noxfile.py")


@nox.session(python=["3.10", "3.11", "3.12"])
def typecheck(session: nox.Session) -> None:
    session.install("mypy", "types-PyYAML", ".")
    session.run("mypy", "symbfile")


@nox.session(python="3.10")
def coverage(session: nox.Session) -> None:
    session.install("coverage[toml]")
    session.run("coverage", "combine")
    session.run("coverage", "report", "--fail-under=80")
    session.run("coverage", "xml", "-o", str(ROOT / "coverage.xml"))
