"""
Hubbub — Social News Ranking & Threaded Discussion Engine
==========================================================
Stores submitted links and text posts, lets registered users vote once per
item, ranks items with a time-decayed popularity score, runs a karma economy
that gates voting and transfers reputation, and keeps a nested comment tree
per post.  A request layer (HTTP, templates, cookies) sits on top and is not
part of this package.

Package layout::

    hubbub/
    ├── config.py          # YAML + .env → typed config, logging setup
    ├── errors.py          # Failure reasons, Result, StoreUnavailable
    ├── models.py          # User / NewsItem / Comment records
    ├── store/
    │   ├── keys.py        # Persisted key layout
    │   └── redis_store.py # Redis adapter + batched pipeline reads
    ├── engine/
    │   ├── options.py     # Tunables catalogue + typed accessor
    │   ├── ranking.py     # Score / rank formulas
    │   ├── karma.py       # Vote eligibility + karma transfer rules
    │   ├── security.py    # Tokens, PBKDF2, constant-time compare
    │   └── threads.py     # Comment tree helpers
    └── services/
        ├── user_service.py    # Accounts, auth tokens, karma
        ├── news_service.py    # Submission, edit/delete, ranked views
        ├── vote_service.py    # News/comment votes
        ├── throttle.py        # Rate-limit locks, submission break
        └── comment_service.py # Comment insert/edit/delete, trees
"""

__version__ = "0.1.0"
