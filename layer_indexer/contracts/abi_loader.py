# layer_indexer/contracts/abi_loader.py

import json
from pathlib import Path
from typing import Optional, List, Dict, Any

from ..core.logging import LoggingMixin

DEFAULT_ABI_DIR = Path(__file__).parent / "abis"
DEFAULT_ABI_FILE = "control_token_v2.json"


class ABILoader(LoggingMixin):
    """Loads contract ABIs from filesystem with caching"""
    
    def __init__(self, abi_base_path: Optional[Path] = None):
        if abi_base_path is None:
            abi_base_path = DEFAULT_ABI_DIR
        
        self.abi_base_path = Path(abi_base_path)
        self._abi_cache: Dict[str, Optional[List[Dict[str, Any]]]] = {}
        
        self.log_debug("ABI loader initialized", abi_base_path=str(self.abi_base_path))
    
    def load_abi(self, abi_file: str = DEFAULT_ABI_FILE) -> Optional[List[Dict[str, Any]]]:
        """Load ABI from filesystem with caching"""
        if not abi_file:
            return None
        
        if abi_file in self._abi_cache:
            return self._abi_cache[abi_file]
        
        abi_path = self.abi_base_path / abi_file
        
        if not abi_path.exists():
            self.log_warning("ABI file not found", abi_path=str(abi_path))
            self._abi_cache[abi_file] = None
            return None
        
        try:
            with open(abi_path, 'r') as f:
                abi_data = json.load(f)
        except json.JSONDecodeError as e:
            self.log_error("Invalid JSON in ABI file",
                          abi_path=str(abi_path),
                          error=str(e))
            self._abi_cache[abi_file] = None
            return None
        
        # Hardhat/Truffle artifacts wrap the ABI
        if isinstance(abi_data, dict) and 'abi' in abi_data:
            abi = abi_data['abi']
        else:
            abi = abi_data
        
        if not isinstance(abi, list):
            self.log_error("ABI is not a list", 
                          abi_path=str(abi_path),
                          abi_type=type(abi).__name__)
            self._abi_cache[abi_file] = None
            return None
        
        self._abi_cache[abi_file] = abi
        
        self.log_debug("ABI loaded successfully", 
                      abi_path=str(abi_path),
                      abi_functions=len([item for item in abi if item.get('type') == 'function']),
                      abi_events=len([item for item in abi if item.get('type') == 'event']))
        
        return abi
