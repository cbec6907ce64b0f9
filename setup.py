from setuptools import find_namespace_packages, setup

setup(
    name="deckcast-backend",
    version="0.1.0",
    packages=find_namespace_packages(include=["models*", "services*", "shared*"]),
    py_modules=["app", "bootloader", "database"],
    install_requires=[
        "fastapi>=0.110",
        "uvicorn[standard]>=0.27",
        "sqlalchemy>=2.0",
        "alembic>=1.13",
        "pydantic>=2.5",
        "redis>=5.0",
        "openai>=1.30",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "python-jose[cryptography]>=3.3",
        "boto3>=1.34",
        "Pillow>=10.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "httpx>=0.27",
        ],
    },
    include_package_data=True,
    description="Backend package for DeckCast (speaker notes, narration and video export)",
    author="Andreas Malathouras",
    author_email="steelstridertgm@gmail.com",
)
