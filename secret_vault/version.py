"""Secret Vault Meta information.
   Secret Vault generates, encrypts and stores user credentials.
"""
__title__ = 'secret_vault'
__description__ = (
   'Secret Vault generates strong secrets and keeps them encrypted '
   'per user until explicitly revealed.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2026 Secret Vault contributors'
__author__ = 'Secret Vault contributors'
__license__ = 'Apache-2.0'
