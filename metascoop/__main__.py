#!/usr/bin/env python3
#
# metascoop/__main__.py - part of metascoop
# Copyright (C) 2026, The metascoop authors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

import sys
import logging
import importlib.metadata

import metascoop.common
from metascoop import _
from argparse import ArgumentError
from collections import OrderedDict


COMMANDS = OrderedDict([
    ("sync", _("Download new releases and update the repo metadata")),
    ("readapps", _("Read the apps.yaml registry and exit")),
])


def print_help():
    print(_("usage: ") + _("metascoop [<command>] [-h|--help|--version|<args>]"))
    print("")
    print(_("Valid commands are:"))
    for cmd, summary in COMMANDS.items():
        print("   " + cmd + ' ' * (15 - len(cmd)) + summary)
    print("")


def main():
    if len(sys.argv) <= 1:
        print_help()
        sys.exit(0)

    command = sys.argv[1]
    if command not in COMMANDS:
        if command in ('-h', '--help'):
            print_help()
            sys.exit(0)
        elif command == '--version':
            try:
                print(importlib.metadata.version("metascoop"))
                sys.exit(0)
            except importlib.metadata.PackageNotFoundError:
                print(_('No version information could be found.'))
                sys.exit(1)
        else:
            print(_("Command '%s' not recognised.\n" % command))
            print_help()
            sys.exit(1)

    verbose = any(s in sys.argv for s in ['-v', '--verbose'])
    quiet = any(s in sys.argv for s in ['-q', '--quiet'])
    color = None
    if '--color' in sys.argv:
        color = True
    elif '--no-color' in sys.argv:
        color = False

    metascoop.common.set_console_logging(verbose=verbose, quiet=quiet, color=color)

    if verbose and quiet:
        logging.critical(_("Conflicting arguments: '--verbose' and '--quiet' "
                           "can not be specified at the same time."))
        sys.exit(1)

    # Trick argparse into displaying the right usage when --help is used.
    sys.argv[0] += ' ' + command

    del sys.argv[1]
    mod = __import__('metascoop.' + command, None, None, [command])

    try:
        mod.main()
    # These are ours, contain a proper message and are "expected"
    except metascoop.exception.MetascoopException as e:
        if verbose:
            raise
        else:
            logging.critical(str(e))
        sys.exit(1)
    except ArgumentError as e:
        logging.critical(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        print('')
        sys.exit(1)
    # These should only be unexpected crashes due to bugs in the code
    # str(e) often doesn't contain a reason, so just show the backtrace
    except Exception as e:
        logging.critical(_("Unknown exception found!"))
        raise e
    sys.exit(0)


if __name__ == "__main__":
    main()
