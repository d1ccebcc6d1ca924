from setuptools import setup, find_packages

setup(
    name="lightwatch",
    version="0.1.0",
    description="lightwatch - симулятор светофоров с монитором живости по heartbeat",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "typer>=0.16.0",
        "rich>=13.7.1",
        "PyYAML>=6.0.2",
        "python-dotenv>=1.0.1",
    ],
    extras_require={
        "test": ["pytest>=8.3.2"],
    },
    entry_points={
        "console_scripts": [
            "lightwatch=lightwatch.apps.cli.app:app",  # команда `lightwatch`
        ],
    },
)
