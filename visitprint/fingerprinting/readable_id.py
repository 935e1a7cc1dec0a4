"""
Readable Identifier Module

Maps a hex digest to a short display name like "bold-amber-hawk-3f".
Three bytes index 64-entry word lists, the last two hex chars are the suffix.
The full digest is still what gets matched; this is for display only.
"""

ADJECTIVES = [
    'swift', 'bold', 'calm', 'keen', 'warm', 'cool', 'wild', 'free',
    'rare', 'fair', 'deep', 'vast', 'pure', 'wise', 'true', 'dark',
    'soft', 'loud', 'sharp', 'bright', 'quick', 'proud', 'brave', 'noble',
    'grand', 'prime', 'vivid', 'eager', 'lucid', 'agile', 'dense', 'broad',
    'lean', 'stern', 'brisk', 'fierce', 'gentle', 'silent', 'steady', 'golden',
    'silver', 'cosmic', 'mystic', 'subtle', 'frozen', 'molten', 'radiant', 'stellar',
    'ancient', 'hollow', 'woven', 'rugged', 'nimble', 'serene', 'hidden', 'daring',
    'fading', 'rising', 'lasting', 'dusty', 'rustic', 'primal', 'neural', 'lucent',
]

COLORS = [
    'red', 'blue', 'green', 'amber', 'coral', 'ivory', 'jade', 'onyx',
    'ruby', 'sage', 'teal', 'plum', 'gold', 'zinc', 'iron', 'lime',
    'mint', 'opal', 'rose', 'rust', 'sand', 'snow', 'aqua', 'bark',
    'clay', 'dawn', 'dusk', 'fern', 'flax', 'foam', 'haze', 'lava',
    'leaf', 'moss', 'pine', 'rain', 'reed', 'salt', 'silk', 'slate',
    'smoke', 'stone', 'storm', 'ash', 'birch', 'bone', 'bronze', 'cedar',
    'chalk', 'chrome', 'cobalt', 'copper', 'cream', 'ebony', 'ember', 'frost',
    'granite', 'honey', 'indigo', 'khaki', 'lilac', 'mauve', 'navy', 'pearl',
]

ANIMALS = [
    'fox', 'owl', 'elk', 'jay', 'bee', 'ram', 'eel', 'yak',
    'lynx', 'moth', 'puma', 'seal', 'dove', 'frog', 'goat', 'hare',
    'ibis', 'lark', 'mole', 'orca', 'pike', 'rook', 'swan', 'toad',
    'vole', 'wasp', 'wolf', 'bear', 'colt', 'crow', 'deer', 'duck',
    'hawk', 'kite', 'lion', 'mink', 'crane', 'eagle', 'finch', 'heron',
    'horse', 'otter', 'quail', 'raven', 'robin', 'shark', 'snake', 'stork',
    'tiger', 'trout', 'viper', 'whale', 'wren', 'bison', 'gecko', 'lemur',
    'mouse', 'panda', 'coral', 'drake', 'egret', 'koala', 'macaw', 'newt',
]


def readable_id(hex_hash: str) -> str:
    """Convert a hex digest to a readable identifier (input returned as-is if too short)."""
    if not hex_hash or len(hex_hash) < 6:
        return hex_hash or ''

    adjective = ADJECTIVES[int(hex_hash[0:2], 16) % len(ADJECTIVES)]
    color = COLORS[int(hex_hash[2:4], 16) % len(COLORS)]
    animal = ANIMALS[int(hex_hash[4:6], 16) % len(ANIMALS)]

    return f"{adjective}-{color}-{animal}-{hex_hash[-2:]}"
