"""
Effect based file IO
"""

import os
import shutil
import tempfile

import attr

from effect import Effect, TypeDispatcher, sync_performer


@attr.s(frozen=True)
class PathInfo(object):
    """What a :obj:`StatPath` probe observed."""
    exists = attr.ib(default=False)
    is_file = attr.ib(default=False)
    is_dir = attr.ib(default=False)
    size = attr.ib(default=0)


@attr.s(frozen=True)
class StatPath(object):
    path = attr.ib()


@attr.s(frozen=True)
class ResolvePath(object):
    path = attr.ib()


@attr.s(frozen=True)
class ReadFile(object):
    path = attr.ib()


@attr.s(frozen=True)
class WriteFileAtomic(object):
    """
    Intent to replace ``path`` with ``content`` such that readers see either
    the old file or the complete new one.
    """
    path = attr.ib()
    content = attr.ib()
    mode = attr.ib(default=None)
    owner = attr.ib(default=None)
    group = attr.ib(default=None)


@attr.s(frozen=True)
class MakeDirectory(object):
    path = attr.ib()
    mode = attr.ib(default=None)
    owner = attr.ib(default=None)
    group = attr.ib(default=None)


@attr.s(frozen=True)
class TouchFiles(object):
    paths = attr.ib(converter=tuple)


@attr.s(frozen=True)
class ChangeOwner(object):
    """
    Intent to hand an existing ``path`` to ``owner`` and ``group``, e.g. a
    keyring a command wrote as the invoking user.
    """
    path = attr.ib()
    owner = attr.ib(default=None)
    group = attr.ib(default=None)
    mode = attr.ib(default=None)


def stat_path(path):
    """Return Effect of :obj:`PathInfo` for ``path``."""
    return Effect(StatPath(path))


def read_file(path):
    """Return Effect of the content of ``path`` or None if it is missing."""
    return Effect(ReadFile(path))


def _set_owner(path, mode, owner, group):
    if mode is not None:
        os.chmod(path, mode)
    if owner is not None or group is not None:
        shutil.chown(path, owner, group)


@sync_performer
def perform_stat_path(disp, intent):
    try:
        st = os.stat(intent.path)
    except FileNotFoundError:
        return PathInfo()
    return PathInfo(exists=True, is_file=os.path.isfile(intent.path),
                    is_dir=os.path.isdir(intent.path), size=st.st_size)


@sync_performer
def perform_resolve_path(disp, intent):
    return os.path.realpath(intent.path)


@sync_performer
def perform_read_file(disp, intent):
    try:
        with open(intent.path, "rb") as f:
            return f.read()
    except FileNotFoundError:
        return None


@sync_performer
def perform_write_file_atomic(disp, intent):
    directory, name = os.path.split(intent.path)
    fd, tmp = tempfile.mkstemp(dir=directory or '.', prefix='.' + name + '.')
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(intent.content)
            f.flush()
            os.fsync(f.fileno())
        _set_owner(tmp, intent.mode, intent.owner, intent.group)
        os.replace(tmp, intent.path)
    except BaseException:
        os.unlink(tmp)
        raise


@sync_performer
def perform_make_directory(disp, intent):
    os.makedirs(intent.path, exist_ok=True)
    _set_owner(intent.path, intent.mode, intent.owner, intent.group)


@sync_performer
def perform_change_owner(disp, intent):
    _set_owner(intent.path, intent.mode, intent.owner, intent.group)


@sync_performer
def perform_touch_files(disp, intent):
    for path in intent.paths:
        with open(path, "ab"):
            pass


def get_fileio_dispatcher():
    return TypeDispatcher({
        StatPath: perform_stat_path,
        ResolvePath: perform_resolve_path,
        ReadFile: perform_read_file,
        WriteFileAtomic: perform_write_file_atomic,
        MakeDirectory: perform_make_directory,
        TouchFiles: perform_touch_files,
        ChangeOwner: perform_change_owner})
