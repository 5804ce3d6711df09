from setuptools import setup, find_packages

setup(
    name="textqa_agent",
    version="0.1.0",
    packages=find_packages(include=["textqa_agent", "textqa_agent.*"]),
    include_package_data=True,
    package_data={"textqa_agent": ["templates/*.j2"]},
    scripts=["textqa-agent.py"],
    install_requires=[
        "playwright==1.52.0",
        "pydantic>=2",
        "openai",
        "python-dotenv",
        "pyyaml",
        "html2text",
        "jinja2"
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    python_requires='>=3.10',
)
