import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]


def _install(session: nox.Session) -> None:
    """Install the project with its test extras into the nox virtualenv."""
    session.install("-e", ".[test]")


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run full test suite across Python versions."""
    _install(session)
    session.run("pytest")


@nox.session(python=PYTHON_VERSIONS)
def tests_domain(session: nox.Session) -> None:
    """Run domain-layer tests only (no infrastructure required)."""
    _install(session)
    session.run("pytest", "-m", "domain")


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_bdd(session: nox.Session) -> None:
    """Run the behaviour scenarios."""
    _install(session)
    session.run("pytest", "tests/ordering/bdd/")


@nox.session(python=PYTHON_VERSIONS[-1])
def loadtest(session: nox.Session) -> None:
    """Headless mixed-workload run against a server on localhost:8000."""
    session.install("-e", ".[loadtest]")
    session.run(
        "locust",
        "-f",
        "loadtests/locustfile.py",
        "MixedWorkloadUser",
        "--headless",
        "--host",
        "http://localhost:8000",
        "-u",
        "20",
        "-r",
        "5",
        "-t",
        "60s",
    )
