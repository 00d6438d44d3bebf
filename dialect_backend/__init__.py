"""
/**
 * @file dialect_backend/__init__.py
 * @description 九州方言翻訳API 后端包。
 */
"""
