from setuptools import setup, find_packages

setup(
    name="fleet-annotation-bot",
    version="1.0.0",
    packages=find_packages(include=['annotation_pipeline', 'annotation_pipeline.*']),
    include_package_data=True,
    install_requires=[
        'openai>=1.40.0',
        'python-dotenv>=0.19.0',
        'opencv-python>=4.8.0',
        'numpy>=1.24.0',
        'python-telegram-bot[http2]>=20.7',
        'httpx[http2]>=0.24.0',
        'psutil>=5.9.0'
    ],
    extras_require={
        'test': [
            'pytest>=7.0.0',
        ],
    },
    python_requires='>=3.10',
    description="A Telegram bot that walks fleet safety footage through a simulated annotation pipeline",
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    keywords='video, annotation, computer vision, fleet, trucking, telegram, bot',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Natural Language :: English',
        'Programming Language :: Python :: 3.10',
        'Topic :: Multimedia :: Video',
        'Topic :: Scientific/Engineering :: Image Recognition',
    ],
)
