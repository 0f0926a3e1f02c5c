import sys

import cv2
import matplotlib.pyplot as plt

def display_comparison(original_path='fisheye_img.png', rectified_path='fisheye_img_rectified.png',
                       remapped_path=None, output_path='comparison.png'):
    """
    Display the original image, the lookup table result and optionally the OpenCV remap
    result side by side for comparison.
    """
    paths = [original_path, rectified_path] + ([remapped_path] if remapped_path else [])
    titles = ['Original Image', 'Lookup Table Rectified', 'OpenCV Remap'][:len(paths)]
    
    images = [cv2.imread(path, cv2.IMREAD_GRAYSCALE) for path in paths]
    if any(image is None for image in images):
        print("Error: Could not load one or more images")
        return
    
    fig, axes = plt.subplots(1, len(images), figsize=(7 * len(images), 7))
    
    for ax, image, title in zip(axes, images, titles):
        ax.imshow(image, cmap='gray', vmin=0, vmax=255)
        ax.set_title(title, fontsize=14)
        ax.axis('off')
    
    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.show()
    
    print(f"Comparison saved as '{output_path}'")
    for title, image in zip(titles, images):
        print(f"{title} shape: {image.shape}")

if __name__ == "__main__":
    display_comparison(*sys.argv[1:4])
