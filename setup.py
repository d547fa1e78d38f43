from setuptools import setup, find_packages
import re

# Read version from minijobcalc/__init__.py
with open('minijobcalc/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='minijob-calc',
    version=version,
    packages=find_packages(include=['minijobcalc', 'minijobcalc.*']),
    install_requires=[
        'PyYAML>=6.0',
        'click>=8.0',
        'pydantic>=2.0.0',
        'rich>=13.0',
    ],
    extras_require={
        'mcp': [
            'mcp[cli]>=1.0.0,<2',
        ],
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'minijob-calc=minijobcalc.cli.__main__:main',
            'minijob-calc-mcp=minijobcalc.mcp.server:run_server',
        ],
    },
    author='Personal',
    description='Minijob billing periods, earnings cap timeline and carry-over ledger.',
    python_requires='>=3.10',
)
