"""Lockbox Meta information.
   Lockbox keeps named secrets on disk behind a single master passphrase.
"""
__title__ = 'lockbox'
__description__ = (
   'Lockbox keeps named secrets on disk behind a single '
   'master passphrase.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
