from setuptools import setup, find_packages

setup(
    name="golddesk",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "requests",
        "pywebview",
        "openpyxl",
        "plyer",
    ],
    extras_require={
        "dev": [
            "pytest",
            "responses",
            "pytest-cov",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            # desktop shell
            "golddesk = golddesk.cli:main",

            # in-memory stand-in backend
            "golddesk-devserver = golddesk.devserver:main",
        ],
    },
)
