"""Setup configuration for meta-insights package."""

from setuptools import setup, find_packages

setup(
    name="meta-insights",
    version="1.0.0",
    description="Meta Marketing API insights report orchestration (sync, async jobs, batching)",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    author="Growth Engineering",
    python_requires=">=3.9",
    packages=find_packages(where=".", include=["meta_insights*"]),
    package_dir={"": "."},
    install_requires=[
        "python-dotenv==1.0.1",
        "PyYAML==6.0.2",
        "requests==2.32.3",
        "pytz>=2020.1",
        "pandas==2.2.2",
        "openpyxl==3.1.5",
        "prometheus-client==0.20.0",
        "jsonschema==4.23.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "responses>=0.25.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "meta-insights=meta_insights.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
