# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# config.py
#
# 17.10.2026
#
# @desc: Default game parameters, overridable through the environment.
# ===================================================================
import os

# Number of cards in a freshly proposed deck
DECK_SIZE = int(os.environ.get('SRACGT_DECK_SIZE', 52))

# Random bits drawn for every SRA exponent
KEY_BITS = int(os.environ.get('SRACGT_KEY_BITS', 600))
