# setup.py
from setuptools import setup, find_packages

install_requires = [
    # --- CONFIGURATION ---
    "pydantic>=2.0.0",
    "pyyaml>=6.0.0",
    "python-dotenv>=1.0.0",

    # --- LOGGING & TERMINAL ---
    "rich>=13.0.0",
]

extras_require = {
    # --- TESTS ---
    "test": [
        "pytest-asyncio>=0.23",
        "pytest",
    ],
}

setup(
    name="conduit",
    version="0.3.0",
    description="Conduit|Coordinators, action channels and path-based navigation",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=install_requires,
    extras_require=extras_require,
    python_requires=">=3.11",
)
