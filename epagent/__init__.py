"""
EPAgent - lado host de EPGuard.

Store autoritativo (applicationHost.config), BackupAndApply, agente remoto,
transportes (SSH / local), recolección de snapshots e inventario.
"""
