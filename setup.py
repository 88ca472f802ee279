"""Package configuration for delivery-metrics.

This file defines installation metadata and console entry points.
"""

import os

import setuptools

# Defer any expensive or failure-prone I/O (like reading README/requirements)
# until setup is actually executed.


def main():
    """Entrypoint for invoking setuptools.setup with package metadata."""

    here = os.path.abspath(os.path.dirname(__file__))

    # Safely read long description
    try:
        with open(os.path.join(here, "README.md"), encoding="utf-8") as f:
            long_description = f.read()
    except OSError:
        long_description = ""

    # Safely read install requirements (production-only)
    # Reading requirements.txt directly would include "-r requirements-dev.txt",
    # which is invalid inside install_requires. We only include prod deps here.
    try:
        with open(os.path.join(here, "requirements-prod.txt"), encoding="utf-8") as f:
            install_requires = [
                line.strip()
                for line in f.read().splitlines()
                if line.strip()
                and not line.strip().startswith("#")
                and not line.strip().startswith("-r ")
            ]
    except OSError:
        install_requires = [
            "numpy",
            "pandas",
            "pydicti",
            "python-dateutil",
            "python-dotenv",
            "PyYAML",
            "scipy",
        ]

    setuptools.setup(
        name="delivery-metrics",
        version="0.1",
        description=(
            "Delivery performance, estimation accuracy and bottleneck metrics "
            "computed from issue tracker work items"
        ),
        long_description=long_description,
        long_description_content_type="text/markdown",
        license="MIT",
        keywords="agile delivery dora metrics estimation analytics",
        packages=setuptools.find_packages(exclude=["contrib", "docs", "tests*"]),
        install_requires=install_requires,
        extras_require={
            "test": ["pytest", "pytest-mock", "mock"],
        },
        python_requires=">=3.9",
        entry_points={
            "console_scripts": [
                "delivery-metrics=delivery_metrics.cli:main",
            ],
        },
    )


if __name__ == "__main__":
    main()
