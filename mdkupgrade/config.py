APP_NAME = "MDK Script Upgrades"
APP_VERSION = "1.1.0"

MSBUILD_XMLNS = "http://schemas.microsoft.com/developer/msbuild/2003"

# Sub-paths are stored the way MSBuild writes them (backslash separated)
SOURCE_WHITELIST_SUB_PATH = "Analyzers\\whitelist.cache"
TARGET_WHITELIST_SUB_PATH = "MDK\\whitelist.cache"
TARGET_OPTIONS_SUB_PATH = "MDK\\MDK.options"

MAX_WORKERS_DEFAULT = 8
