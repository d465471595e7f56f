"""Easy KeyVault Meta information.
   Easy KeyVault resolves Azure Key Vault keys and keeps them cached in memory.
"""
__title__ = 'easy_keyvault'
__description__ = (
   'Easy KeyVault resolves Azure Key Vault keys by URI and caches '
   'the resolved key handles in memory.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/easy-keyvault'
