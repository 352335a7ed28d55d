"""
featuregen CLI - Generate Liberty features for an application.

Commands:
    featuregen generate          Write the features missing from server.xml
    featuregen feature parse     Split a feature identifier
    featuregen feature mp-level  MicroProfile level of a feature
    featuregen platform detect   Java EE / MicroProfile levels of a project
"""

import click

from .generate import generate as generate_command
from .inspect import feature, platform


@click.group()
@click.version_option(package_name="featuregen")
def main():
    """featuregen - Liberty feature generation from project dependencies."""
    pass


main.add_command(generate_command)
main.add_command(feature)
main.add_command(platform)


if __name__ == "__main__":
    main()
