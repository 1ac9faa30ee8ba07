"""
Convergence of Ceph storage nodes towards a declared state.
"""
