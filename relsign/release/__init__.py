# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release signing subsystem for relsign.

Turns the single unsigned artifact a build leaves behind into a verified,
renamed, signed artifact: locate, sign, verify, rename. Signing and
verification are delegated to jarsigner through the adapters in signing/ and
verification/. Nothing here implements cryptography.
"""
