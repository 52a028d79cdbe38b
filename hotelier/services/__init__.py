"""
Services package: the two write-back stores, the ranking engine and the
ranking-change publisher.
"""
