"""Setup script for the checkout backend."""
from pathlib import Path

from setuptools import setup, find_packages

here = Path(__file__).parent

setup(
    name="checkout-backend",
    version="1.0.0",
    description="Checkout backend with Mercado Pago preferences and webhook-driven order reconciliation",
    author="ML Roadmap Bootcamp",
    python_requires=">=3.11",
    packages=find_packages(include=["checkout", "checkout.*"]),
    package_data={"checkout.api": ["templates/*.html"]},
    include_package_data=True,
    install_requires=[
        line.strip()
        for line in (here / "requirements.txt").read_text().splitlines()
        if line.strip() and not line.startswith("#") and not line.startswith("git+")
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
        ],
        "dev": [
            "black>=23.0.0",
            "isort>=5.12.0",
            "flake8>=6.0.0",
            "mypy>=1.4.0",
            "pytest-cov>=4.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "checkout-backend=checkout.cli:main",
        ]
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Framework :: FastAPI",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
