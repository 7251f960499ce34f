import gettext
import glob
import os
import sys


# support running straight from git and standard installs
rootpaths = [
    os.path.realpath(os.path.join(os.path.dirname(__file__), '..')),
    os.path.join(sys.prefix, 'share'),
]

localedir = None
for rootpath in rootpaths:
    if len(glob.glob(os.path.join(rootpath, 'locale', '*', 'LC_MESSAGES', 'metascoop.mo'))) > 0:
        localedir = os.path.join(rootpath, 'locale')
        break

gettext.bindtextdomain('metascoop', localedir)
gettext.textdomain('metascoop')
_ = gettext.gettext


from metascoop.exception import (MetascoopException,
                                 InvalidRepoUrl,
                                 InvalidRegistryEntry,
                                 IndexReadFailure,
                                 MetadataWriteFailure)  # NOQA: E402
MetascoopException  # NOQA: B101
InvalidRepoUrl  # NOQA: B101
InvalidRegistryEntry  # NOQA: B101
IndexReadFailure  # NOQA: B101
MetadataWriteFailure  # NOQA: B101

from metascoop.apps import (find_apk_release,
                            generate_release_filename,
                            parse_app_file,
                            repo_info)  # NOQA: E402
find_apk_release  # NOQA: B101
generate_release_filename  # NOQA: B101
parse_app_file  # NOQA: B101
repo_info  # NOQA: B101
from metascoop.index import (find_latest_package,
                             has_significant_changes,
                             read_index)  # NOQA: E402
find_latest_package  # NOQA: B101
has_significant_changes  # NOQA: B101
read_index  # NOQA: B101
from metascoop.metadata import (apply_app_info,
                                set_non_empty,
                                write_meta_file)  # NOQA: E402
apply_app_info  # NOQA: B101
set_non_empty  # NOQA: B101
write_meta_file  # NOQA: B101
