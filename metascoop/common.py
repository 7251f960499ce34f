#!/usr/bin/env python3
#
# common.py - part of metascoop
#
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

# common.py is imported by all modules, so keep the third-party imports
# here limited to what every subcommand needs anyway.

import contextlib
import io
import logging
import os
import shutil
import subprocess
import sys
from argparse import BooleanOptionalAction
from pathlib import Path

import yaml

import metascoop.common
from metascoop import _
from metascoop.exception import ConfigurationException, MetascoopException


options = None
config = None

CONFIG_FILE = 'config.yml'
INDEX_FILE_NAME = 'index-v1.json'

# All paths in the config must be strings, never pathlib.Path instances
default_config = {
    'apps_path': 'apps.yaml',
    'repo_dir': os.path.join('fdroid', 'repo'),
    'readme_path': None,
    'fdroid': 'fdroid',
    'index_name': INDEX_FILE_NAME,
    'github_api_token': None,
    'download_retries': 3,
    'char_limits': {
        'summary': 80,
    },
    'screenshot_extensions': ['png', 'jpg', 'jpeg'],
}

# config keys whose value is a dict on purpose, not an {env: VAR} lookup
DICT_CONFIG_KEYS = ('char_limits',)


def get_options():
    """Return options as set up by parse_args()."""
    return metascoop.common.options


def parse_args(parser, args=None):
    """Call parser.parse_args(), store result in module-level variable and return it.

    This sets up the copy of the options instance in the
    metascoop.common module, which functions like MetascoopPopen()
    read to decide how chatty to be.

    """
    metascoop.common.options = parser.parse_args(args)
    return metascoop.common.options


def setup_global_opts(parser):
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help=_("Spew out even more information than normal"),
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=False,
        help=_("Restrict output to warnings and errors"),
    )
    parser.add_argument(
        "--color",
        action=BooleanOptionalAction,
        default=None,
        help=_("Color the log output"),
    )


class ColorFormatter(logging.Formatter):

    def __init__(self, msg):
        logging.Formatter.__init__(self, msg)

        bright_black = "\x1b[90;20m"
        yellow = "\x1b[33;20m"
        red = "\x1b[31;20m"
        bold_red = "\x1b[31;1m"
        reset = "\x1b[0m"

        self.FORMATS = {
            logging.DEBUG: bright_black + msg + reset,
            logging.INFO: reset + msg + reset,  # use default color
            logging.WARNING: yellow + msg + reset,
            logging.ERROR: red + msg + reset,
            logging.CRITICAL: bold_red + msg + reset
        }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


def set_console_logging(verbose=False, quiet=False, color=False):
    """Globally set logging to output nicely to the console.

    Informational messages go to stdout so that they end up inside the
    GitHub Actions log groups, errors go to stderr.

    """

    class _StdOutFilter(logging.Filter):
        def filter(self, record):
            return record.levelno < logging.ERROR

    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    if color or (color is None and sys.stdout.isatty()):
        formatter = ColorFormatter
    else:
        formatter = logging.Formatter

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.addFilter(_StdOutFilter())
    stdout_handler.setFormatter(formatter('%(message)s'))

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.ERROR)
    stderr_handler.setFormatter(formatter(_('ERROR: %(message)s')))

    logging.basicConfig(
        force=True, level=level, handlers=[stdout_handler, stderr_handler]
    )


@contextlib.contextmanager
def log_group(name):
    """Wrap the output of a block in a collapsible GitHub Actions log group."""
    sys.stdout.flush()
    print('::group::' + name, flush=True)
    try:
        yield
    finally:
        sys.stdout.flush()
        print('::endgroup::', flush=True)


def config_type_check(path, data):
    if not isinstance(data, dict):
        msg = _('{path} is not "key: value" dict, but a {datatype}!')
        raise TypeError(msg.format(path=path, datatype=type(data).__name__))


def fill_config_defaults(thisconfig):
    """Fill in the global config dict with relevant defaults."""
    for k, v in default_config.items():
        if k not in thisconfig:
            if isinstance(v, dict) or isinstance(v, list):
                thisconfig[k] = v.copy()
            else:
                thisconfig[k] = v
        elif isinstance(v, dict) and isinstance(thisconfig[k], dict):
            for subkey, subvalue in v.items():
                thisconfig[k].setdefault(subkey, subvalue)

    if not thisconfig.get('github_api_token'):
        thisconfig['github_api_token'] = os.getenv('GITHUB_TOKEN')

    for k in ('apps_path', 'repo_dir', 'readme_path'):
        if thisconfig.get(k):
            thisconfig[k] = os.path.expanduser(os.path.expandvars(thisconfig[k]))


def get_config():
    """Get the initalized, singleton config instance."""
    if metascoop.common.config is not None:
        return metascoop.common.config
    return read_config()


def read_config(config_file=CONFIG_FILE):
    """Read the metascoop config.

    The config is read from config_file, which is in the current
    directory by default.  It is optional, when it does not exist, the
    defaults are used.  Secrets like the GitHub token should not be put
    in the file directly, instead use an env lookup::

        github_api_token:
          env: GITHUB_TOKEN

    """
    global config

    if config is not None:
        return config

    thisconfig = {}
    if os.path.exists(config_file):
        logging.debug(_("Reading '{config_file}'").format(config_file=config_file))
        with open(config_file, encoding='utf-8') as fp:
            try:
                thisconfig = yaml.safe_load(fp)
            except yaml.YAMLError as e:
                raise ConfigurationException(
                    _('Could not parse {path}').format(path=config_file), str(e)
                ) from e
        if not thisconfig:
            thisconfig = {}
        config_type_check(config_file, thisconfig)

    confignames_to_delete = set()
    for configname, dictvalue in thisconfig.items():
        if configname in DICT_CONFIG_KEYS:
            continue
        elif isinstance(dictvalue, dict):
            for k, v in dictvalue.items():
                if k == 'env':
                    env = os.getenv(v)
                    if env:
                        thisconfig[configname] = env
                    else:
                        confignames_to_delete.add(configname)
                        logging.error(_('Environment variable {var} from {configname} is not set!')
                                      .format(var=v, configname=configname))
                else:
                    confignames_to_delete.add(configname)
                    logging.error(_('Unknown entry {key} in {configname}')
                                  .format(key=k, configname=configname))

    for configname in confignames_to_delete:
        del thisconfig[configname]

    fill_config_defaults(thisconfig)

    if not isinstance(thisconfig['char_limits'], dict):
        raise ConfigurationException(_('char_limits must be a dict of field: length'))
    summary_limit = thisconfig['char_limits'].get('summary')
    if not isinstance(summary_limit, int) or summary_limit <= 3:
        raise ConfigurationException(
            _('char_limits: summary must be an integer larger than 3, not {value}')
            .format(value=summary_limit)
        )

    config = thisconfig
    return config


def get_fdroid_dir(repo_dir):
    """Return the F-Droid repo root, the directory that holds repo/ and metadata/."""
    return Path(repo_dir).resolve().parent


def get_extension(filename):
    """Get name and extension of filename, with extension always lower case."""
    base, ext = os.path.splitext(filename)
    if not ext:
        return base, ''
    return base, ext.lower()[1:]


def move_file(oldpath, newpath):
    """Move a file, copying it when a rename is not possible.

    os.rename() fails across filesystems, e.g. from a clone in /tmp into
    the repo checkout, so then fall back to copying and removing the
    original.

    """
    try:
        os.rename(oldpath, newpath)
    except OSError:
        shutil.copyfile(oldpath, newpath)
        os.remove(oldpath)


class PopenResult:
    def __init__(self, returncode=None, output=None):
        self.returncode = returncode
        self.output = output


def MetascoopPopen(commands, cwd=None, envs=None, output=True):
    """
    Run a command and capture its output as a str.

    stderr is merged into stdout.  When running with --verbose, the
    output is also echoed to the console as it comes in.

    Parameters
    ----------
    commands
        command and argument list like in subprocess.Popen
    cwd
        optionally specifies a working directory
    envs
        a optional dictionary of environment variables and their values

    Returns
    -------
    A PopenResult.
    """
    process_env = os.environ.copy()
    if envs:
        process_env.update(envs)

    if cwd:
        cwd = os.path.normpath(cwd)
        logging.debug("Directory: %s" % cwd)
    logging.debug("> %s" % ' '.join(commands))

    result = PopenResult()
    try:
        p = subprocess.Popen(commands, cwd=cwd, shell=False, env=process_env,
                             stdin=subprocess.DEVNULL, stdout=subprocess.PIPE,
                             stderr=subprocess.STDOUT)
    except OSError as e:
        raise MetascoopException("OSError while trying to execute "
                                 + ' '.join(commands) + ': ' + str(e)) from e

    buf = io.BytesIO()
    with p.stdout:
        for line in iter(p.stdout.readline, b''):
            if output and options and options.verbose:
                sys.stderr.buffer.write(line)
                sys.stderr.flush()
            buf.write(line)

    result.returncode = p.wait()
    result.output = buf.getvalue().decode('utf-8', 'ignore')
    buf.close()
    return result
