"""Loader script emitter.

After extraction the project bundle only holds one section: a small Ruby
program that, when the game boots, reads `load_order.txt` from the scripts
folder and evaluates each enabled `.rb` file in order. If loading dies, it
dumps `{:type, :mesg, :back}` with Marshal to the crash log (read back by
`rgsm.codecs.crash_report`) and re-raises.

The values below are baked into the program as single-quoted Ruby literals,
relative to the game folder (the engine's working directory).
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from pathlib import PurePath

from rgsm.codecs.rgss_bundle import BundleEntry, build_entries
from rgsm.core.constants import (
    LOAD_ORDER_FILE_NAME,
    LOADER_SCRIPT_NAME,
    SCRIPT_EXTENSION,
    SKIP_CHARACTER,
)
from rgsm.settings import Settings


class _RubyTemplate(string.Template):
    # Ruby uses `$` for globals and `#{}` for interpolation.
    delimiter = "%%"


_LOADER_TEMPLATE = _RubyTemplate(
    """\
#==============================================================================
# ** %%{script_name}
#------------------------------------------------------------------------------
# Generated by rgsm. Loads the external script files listed in the load order
# file of the scripts folder. Regenerate it instead of editing it by hand:
#
#   rgsm loader <project folder>
#==============================================================================

module RgsmLoaderConfig
  LOADER_NAME = %%{script_name_literal}
  SCRIPTS_PATH = %%{scripts_path}
  LOAD_ORDER_FILE = %%{load_order_file}
  ERROR_FILE_PATH = %%{error_file_path}
  SKIP_CHARACTER = %%{skip_character}
  SCRIPT_EXTENSION = %%{script_extension}
end

module RgsmLoader
  include RgsmLoaderConfig

  NOTHING_LOADED = "No script was loaded. Check that the files listed in " \\
                   "the load order file exist and are not all disabled."

  def self.run
    @loaded = 0
    reopen_console if rgss3?
    order = File.join(SCRIPTS_PATH, LOAD_ORDER_FILE)
    log("Reading load order: #{order}")
    File.read(order).split("\\n").each { |line| load_entry(line.strip) }
    raise StandardError.new(NOTHING_LOADED) if @loaded == 0
  rescue StandardError, ScriptError => e
    write_crash_report(e)
    raise
  end

  def self.load_entry(entry)
    return if entry.empty? || entry.index(SKIP_CHARACTER) == 0
    return unless File.extname(entry).downcase == SCRIPT_EXTENSION
    file = File.expand_path(entry, SCRIPTS_PATH)
    log("Loading #{entry}")
    Kernel.eval(File.read(file), TOPLEVEL_BINDING, file)
    @loaded += 1
  end

  def self.write_crash_report(error)
    make_dirs(File.dirname(ERROR_FILE_PATH))
    report = {
      :type => error.class.name.to_s,
      :mesg => error.message.to_s,
      :back => error.backtrace || []
    }
    File.open(ERROR_FILE_PATH, 'wb') { |f| f.write(Marshal.dump(report)) }
  end

  def self.make_dirs(directory)
    parts = directory.to_s.split(File::SEPARATOR)
    parts.size.times do |i|
      dir = parts[0..i].join(File::SEPARATOR)
      next if dir.empty?
      Dir.mkdir(dir) unless File.directory?(dir)
    end
  end

  # RGSS3 games spawned without a console raise EBADF on print.
  def self.reopen_console
    $stdout.reopen('CONOUT$')
    $stderr.reopen('CONOUT$')
  rescue StandardError
    null = File.exist?('/dev/null') ? '/dev/null' : 'NUL'
    $stdout.reopen(null, 'a') rescue nil
    $stderr.reopen(null, 'a') rescue nil
  end

  def self.rgss3?
    File.file?('Data/Scripts.rvdata2')
  end

  # Printing on RGSS1/RGSS2 opens a message box per line.
  def self.log(message)
    print("[#{LOADER_NAME}] #{message}\\n") if rgss3?
  end
end

RgsmLoader.run
"""
)


def ruby_string(value: str) -> str:
    """Quote `value` as a single-quoted Ruby string literal."""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


@dataclass(frozen=True)
class LoaderConfig:
    # Paths are relative to the game folder.
    scripts_folder: str
    error_file_path: str
    load_order_file_name: str = LOAD_ORDER_FILE_NAME
    skip_character: str = SKIP_CHARACTER
    script_name: str = LOADER_SCRIPT_NAME

    def __post_init__(self) -> None:
        for name in ("scripts_folder", "error_file_path", "load_order_file_name", "skip_character", "script_name"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"LoaderConfig.{name}: must be a non-empty string")
        if "\n" in self.script_name or "\r" in self.script_name:
            raise ValueError("LoaderConfig.script_name: must be a single line")

    @classmethod
    def from_settings(cls, settings: Settings) -> LoaderConfig:
        return cls(
            scripts_folder=PurePath(settings.scripts_folder).as_posix(),
            error_file_path=PurePath(settings.game_log_file).as_posix(),
        )


def render_loader_code(config: LoaderConfig) -> str:
    return _LOADER_TEMPLATE.substitute(
        script_name=config.script_name,
        script_name_literal=ruby_string(config.script_name),
        scripts_path=ruby_string(config.scripts_folder),
        load_order_file=ruby_string(config.load_order_file_name),
        error_file_path=ruby_string(config.error_file_path),
        skip_character=ruby_string(config.skip_character),
        script_extension=ruby_string(SCRIPT_EXTENSION),
    )


def loader_entry(config: LoaderConfig) -> BundleEntry:
    """The loader as a bundle entry, always under `LOADER_SECTION_ID`."""
    (entry,) = build_entries([], loader_code=render_loader_code(config), loader_name=config.script_name)
    return entry
