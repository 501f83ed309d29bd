from ._functional import chunk, concat, dropout, embedding, gather, split, stack

__all__ = [
    chunk.__name__,
    concat.__name__,
    dropout.__name__,
    embedding.__name__,
    gather.__name__,
    split.__name__,
    stack.__name__,
]
