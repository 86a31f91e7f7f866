[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "salesanalysis"
version = "0.1.0"
description = "Load sales CSV exports into MariaDB and serve customer analysis figures over HTTP."
requires-python = ">=3.11"
keywords = ["sales", "csv", "mariadb", "mysql", "analytics", "reporting"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Office/Business :: Financial",
]
dependencies = [
    "pymysql",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
salesanalysis = "salesanalysis.server:main"

[tool.hatch.build.targets.wheel]
packages = ["salesanalysis"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
