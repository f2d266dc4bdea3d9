from setuptools import setup, find_packages

setup(
    name='auto_anki',
    version='0.1.0',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    install_requires=[
        'openai>=1.0',
        'httpx',
        'pyyaml',
        'click',
        'rich',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'auto-anki=auto_anki.cli:main',
        ],
    },
    description='Generate Anki flashcards from notes with an LLM and add them through AnkiConnect',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.9',
)
