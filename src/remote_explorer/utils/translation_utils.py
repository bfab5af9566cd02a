#!/usr/bin/env python3
# -*- coding: utf-8 -*-
#
# translation_utils.py - Utilities for translation support
#
import gettext
import os

# Determine locale directory (works for system install and bundled installs)
locale_dir = "/usr/share/locale"

if "REMOTE_EXPLORER_LOCALEDIR" in os.environ:
    locale_dir = os.environ["REMOTE_EXPLORER_LOCALEDIR"]
else:
    # Bundled layout: <prefix>/share/remote_explorer/utils/translation_utils.py
    script_dir = os.path.dirname(os.path.abspath(__file__))
    share_dir = os.path.dirname(os.path.dirname(script_dir))
    bundled_locale = os.path.join(share_dir, "locale")
    if os.path.isdir(os.path.join(bundled_locale, "pt_BR")):
        locale_dir = bundled_locale

TEXT_DOMAIN = "remote-explorer"

gettext.bindtextdomain(TEXT_DOMAIN, locale_dir)
_translation = gettext.translation(TEXT_DOMAIN, locale_dir, fallback=True)

# Export _ directly as the translation function
_ = _translation.gettext
ngettext = _translation.ngettext
