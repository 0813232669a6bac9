from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="headline-neutralizer",
    version="0.1.0",
    author="OSInsight",
    author_email="hello@osinsight.io",
    description="Rewrite sensational news headlines into neutral ones with AI",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/OSInsight/headline-neutralizer",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Development Status :: 3 - Alpha",
        "Intended Audience :: End Users/Desktop",
        "Topic :: Text Processing :: Linguistic",
    ],
    python_requires=">=3.10",
    install_requires=[
        "requests>=2.28.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "PyYAML>=6.0",
        "anthropic>=0.7.0",
        "beautifulsoup4>=4.12.0",
        "soupsieve>=2.4",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "neutralize-headlines=headline_neutralizer.core.cli:main",
        ],
    },
)
